"""Template rendering for generated source files."""

from .engine import SecureTemplateEngine

__all__ = ["SecureTemplateEngine"]
