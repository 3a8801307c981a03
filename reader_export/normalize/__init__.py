"""
Item normalization.

This package turns each project item into a markdown fragment or, for
uploaded PDFs bound for PDF output, a native artifact.
"""

from .context import NormalizeContext
from .normalizer import Normalizer
from .svg import SvgResolver
from .text import PAGE_BREAK_MARKER, clean_extracted_text, has_extractable_text

__all__ = [
    "PAGE_BREAK_MARKER",
    "NormalizeContext",
    "Normalizer",
    "SvgResolver",
    "clean_extracted_text",
    "has_extractable_text",
]
