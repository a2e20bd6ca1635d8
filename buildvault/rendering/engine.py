"""Sandboxed Jinja2 rendering for generated source files.

The engine is the single place generated code is produced from templates.

Security Features:
    - Sandboxed environment prevents template code execution
    - StrictUndefined catches missing variables early (fail-fast)
    - Template path validation prevents directory traversal

Example:
    >>> engine = SecureTemplateEngine()
    >>> source = engine.render("app_keys.py.j2", context)
"""

from pathlib import Path
from typing import Any, cast

from jinja2 import FileSystemLoader, StrictUndefined, TemplateNotFound
from jinja2.sandbox import SandboxedEnvironment

from .filters import byte_rows, comment_safe


class SecureTemplateEngine:
    """Sandboxed Jinja2 environment over the package's template directory.

    Configuration:
        - Autoescape disabled (Python source doesn't need HTML escaping)
        - trim_blocks/lstrip_blocks enabled for clean output
        - keep_trailing_newline preserves file format

    Attributes:
        template_dir: Resolved path to the template directory.
        env: The SandboxedEnvironment instance.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        """Initialize template engine.

        Args:
            template_dir: Root directory for templates. If None, uses the
                package's built-in templates directory.

        Raises:
            ValueError: If template_dir doesn't exist or isn't a directory.
        """
        if template_dir is None:
            template_dir = Path(__file__).parent.parent / "templates"

        self.template_dir = template_dir.resolve()

        if not self.template_dir.is_dir():
            raise ValueError(f"Template directory does not exist: {self.template_dir}")

        self.env = SandboxedEnvironment(
            loader=FileSystemLoader(str(self.template_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters.update(
            {
                "byte_rows": byte_rows,
                "comment_safe": comment_safe,
            }
        )

    def validate_template_path(self, template_path: str) -> Path:
        """Ensure a template path resolves inside the template directory.

        Raises:
            ValueError: If path escapes template directory.
            TemplateNotFound: If the template file doesn't exist.
        """
        requested_path = (self.template_dir / template_path).resolve()

        try:
            requested_path.relative_to(self.template_dir)
        except ValueError as e:
            raise ValueError(f"Template path escapes template directory: {template_path}") from e

        if not requested_path.exists():
            raise TemplateNotFound(template_path)

        return requested_path

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a template with the given context.

        Raises:
            TemplateNotFound: If template doesn't exist.
            jinja2.UndefinedError: If the template uses undefined variables.
        """
        self.validate_template_path(template_path)
        template = self.env.get_template(template_path)
        return cast(str, template.render(**context))
