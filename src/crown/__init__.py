"""crown: build print-quality PDFs from markdown, templates and stylesheets."""

__all__ = ["__version__"]

__version__ = "0.1.0"
