"""
Page fetching and main-content extraction.

This package handles HTTP fetching with browser profiles, article
extraction, boilerplate removal and Wikipedia REST access.
"""

from .boilerplate import apply_html_rules, apply_markdown_rules
from .extractor import ExtractedPage, extract_main_html
from .fetcher import FetchResult, download_to_file, fetch_html, normalize_url
from .wikipedia import WikipediaArticle, fetch_wikipedia_article, is_wikipedia_url, parse_wikipedia_ref

__all__ = [
    "ExtractedPage",
    "FetchResult",
    "WikipediaArticle",
    "apply_html_rules",
    "apply_markdown_rules",
    "download_to_file",
    "extract_main_html",
    "fetch_html",
    "fetch_wikipedia_article",
    "is_wikipedia_url",
    "normalize_url",
    "parse_wikipedia_ref",
]
