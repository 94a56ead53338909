"""Parse SUMMARY.md, load Markdown books, and order their preprocessors and renderers."""

__version__ = "0.1.0"