"""stencil: scaffold projects, pages and sections from registry templates."""

__version__ = "0.4.2"

__all__ = ["__version__"]
