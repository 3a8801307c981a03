"""
Reader Export - assemble reader collections into PDF, EPUB or Markdown.

This package turns an ordered project of web pages, Wikipedia articles,
uploaded PDF/DOCX documents, images, headings and a title page into one
output document, collecting source citations and tolerating per-item
failures.

Main entry point is the CLI via `reader-export export` command.

Example:
    $ reader-export export -p project.yaml -f pdf
"""

__all__ = ["__version__", "ExportService", "export_project", "load_config", "ProjectSnapshot", "Item"]
__version__ = "0.1.0"

from .config import load_config
from .core.types import Item, ProjectSnapshot
from .pipeline import ExportService, export_project
