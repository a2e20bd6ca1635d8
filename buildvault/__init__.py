"""buildvault: credential protection engine for mobile build automation."""

__version__ = "0.1.0"
