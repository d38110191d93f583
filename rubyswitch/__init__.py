"""Switch the active Ruby and gem environment from per-project marker files."""

__version__ = "0.1.0"
