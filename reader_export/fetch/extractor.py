"""
Main-content extraction with multiple fallback strategies.

This module provides a chain of extraction methods returning article HTML:
1. readability: Mozilla's readability algorithm (default)
2. trafilatura: Purpose-built article extraction (optional)
3. selectors: Common "article body" containers
4. paragraphs: Every substantial <p> of the page
5. body: The cleaned <body> as a last resort
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Callable

from bs4 import BeautifulSoup
from readability import Document
import trafilatura

from ..config import ExtractConfig
from .boilerplate import JUNK_SELECTORS, apply_html_rules, remove_selectors

logger = logging.getLogger("reader_export.fetch")

_REGION_TAGS = ["nav", "aside", "footer", "header", "iframe", "noscript", "template", "script", "style"]

ARTICLE_SELECTORS = [
    "article",
    "main article",
    "[role='main']",
    "main",
    ".article-content",
    ".post-content",
    ".entry-content",
    ".content-body",
    ".article-body",
    ".story-body",
    "#article-body",
    ".post-body",
]


@dataclass
class ExtractedPage:
    """Main content of a page.

    Attributes:
        html: Article HTML fragment
        title: Document title, if any
        byline: Author line reported by readability
        method: Name of the strategy that produced the content
    """

    html: str
    title: str = ""
    byline: str = ""
    method: str = "body"


Strategy = Callable[[BeautifulSoup, ExtractConfig], "ExtractedPage | None"]


def extract_main_html(raw_html: str, cfg: ExtractConfig, base_url: str = "") -> ExtractedPage:
    """Extract the main article HTML from a raw page.

    Non-content regions and junk selectors are removed first, then each
    strategy is tried in order until one yields more than
    cfg.min_content_chars of HTML. The body strategy always succeeds.

    Args:
        raw_html: The fetched page
        cfg: Extraction configuration (strategy order and thresholds)
        base_url: Page URL, used for logging

    Returns:
        ExtractedPage with the content and the winning strategy name
    """
    soup = _preclean(raw_html)
    order = [cfg.primary] + [name for name in cfg.fallback if name != cfg.primary]
    if "body" not in order:
        order.append("body")

    for method in order:
        extractor = _get_extractor(method)
        if not extractor:
            continue
        # strategies may mutate the tree
        page = extractor(_clone(soup), cfg)
        if page and len(page.html.strip()) > cfg.min_content_chars:
            logger.debug("Strategy %s extracted %d chars from %s", method, len(page.html), base_url)
            page.method = method
            return page
        logger.debug("Strategy %s found too little content on %s", method, base_url)

    return ExtractedPage(html="", title=_title_of(soup), method="none")


def _get_extractor(name: str) -> Strategy | None:
    """Get the extraction strategy for a given method name."""
    return {
        "readability": _extract_readability,
        "trafilatura": _extract_trafilatura,
        "selectors": _extract_selectors,
        "paragraphs": _extract_paragraphs,
        "body": _extract_body,
    }.get(name)


def _preclean(raw_html: str) -> BeautifulSoup:
    soup = BeautifulSoup(raw_html, "html.parser")
    for tag in soup.find_all(_REGION_TAGS):
        tag.decompose()
    remove_selectors(soup, JUNK_SELECTORS)
    return soup


def _clone(soup: BeautifulSoup) -> BeautifulSoup:
    return BeautifulSoup(str(soup), "html.parser")


def _title_of(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def _extract_readability(soup: BeautifulSoup, cfg: ExtractConfig) -> ExtractedPage | None:
    """Readability is the same algorithm used in Firefox's Reader View."""
    doc = Document(str(soup))
    content = doc.summary(html_partial=True)
    if not BeautifulSoup(content, "html.parser").get_text().strip():
        return None
    return ExtractedPage(html=apply_html_rules(content), title=doc.short_title() or _title_of(soup))


def _extract_trafilatura(soup: BeautifulSoup, cfg: ExtractConfig) -> ExtractedPage | None:
    content = trafilatura.extract(str(soup), output_format="html", include_images=True, include_links=True)
    if not content:
        return None
    return ExtractedPage(html=apply_html_rules(content), title=_title_of(soup))


def _extract_selectors(soup: BeautifulSoup, cfg: ExtractConfig) -> ExtractedPage | None:
    for selector in ARTICLE_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        html = element.decode_contents().strip()
        if len(html) > cfg.min_content_chars:
            return ExtractedPage(html=html, title=_title_of(soup))
    return None


def _extract_paragraphs(soup: BeautifulSoup, cfg: ExtractConfig) -> ExtractedPage | None:
    paragraphs = soup.find_all("p")
    if len(paragraphs) <= 2:
        return None
    kept = [str(p) for p in paragraphs if len(p.get_text().strip()) > cfg.min_paragraph_chars]
    if not kept:
        return None
    return ExtractedPage(html="\n".join(kept), title=_title_of(soup))


def _extract_body(soup: BeautifulSoup, cfg: ExtractConfig) -> ExtractedPage | None:
    body = soup.body
    html = body.decode_contents() if body is not None else str(soup)
    html = re.sub(r"\n{3,}", "\n\n", html)
    return ExtractedPage(html=html, title=_title_of(soup))
