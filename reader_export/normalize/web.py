"""
Web page and Wikipedia items.

Fetched pages go through main-content extraction, HTML to markdown
conversion and boilerplate stripping. Wikipedia articles use the REST HTML
endpoint instead of scraping. Every fragment starts with the item title as a
level-one heading.
"""

from __future__ import annotations

import html as html_lib
import logging

from ..core.errors import BotProtectionDetected, ItemFetchError
from ..core.types import Item, ItemType, MarkdownFragment
from ..fetch import (
    apply_markdown_rules,
    extract_main_html,
    fetch_html,
    fetch_wikipedia_article,
    is_wikipedia_url,
    normalize_url,
)
from ..utils.logging import log_event
from .context import NormalizeContext

logger = logging.getLogger("reader_export.normalize")

# Placeholders stored by older fetches of protected pages.
_CACHED_BLOCK_MARKERS = ("This website uses bot protection", "cannot be automatically fetched")


def normalize_web(item: Item, ctx: NormalizeContext) -> MarkdownFragment:
    """Normalize a url or wikipedia item.

    A url item with cached content uses it verbatim: nothing is fetched and
    no citation is recorded.

    Raises:
        BotProtectionDetected: The page (or its cached copy) is behind a challenge
        ItemFetchError: The page could not be fetched
    """
    title = (item.title or "").strip() or "Untitled"
    if item.type == ItemType.URL and item.cached_content:
        if any(marker in item.cached_content for marker in _CACHED_BLOCK_MARKERS):
            raise BotProtectionDetected(
                "Site uses bot protection (Cloudflare). Cannot be automatically fetched.", url=item.source_url
            )
        log_event(logger, "Using cached content", event="cached_content", item_id=item.id)
        content = item.cached_content
    else:
        if not item.source_url:
            raise ItemFetchError(f"Item '{title}' has no source URL")
        if is_wikipedia_url(item.source_url):
            content = _wikipedia_markdown(item.source_url, ctx)
        else:
            content = _page_markdown(item, ctx)

    return MarkdownFragment(item_id=item.id, title=title, markdown=f"# {title}\n\n{content.strip()}")


def _wikipedia_markdown(url: str, ctx: NormalizeContext) -> str:
    article = fetch_wikipedia_article(normalize_url(url), ctx.cfg.fetch, ctx.cfg.wikipedia, ctx.client)
    ctx.attributions.add_wikipedia(article.title, article.canonical_url, article.revision)
    return ctx.html_to_markdown(article.html)


def _page_markdown(item: Item, ctx: NormalizeContext) -> str:
    url = normalize_url(item.source_url or "")
    page = fetch_html(url, ctx.cfg.fetch, ctx.client)
    extracted = extract_main_html(page.text, ctx.cfg.extract, base_url=url)
    log_event(
        logger,
        "Extracted page content",
        event="extracted",
        item_id=item.id,
        url=url,
        method=extracted.method,
        chars=len(extracted.html),
    )
    if len(extracted.html.strip()) < 50:
        logger.warning("Very little content extracted from %s (%d chars)", url, len(extracted.html))

    heading = f"<h1>{html_lib.escape(extracted.title)}</h1>" if extracted.title else ""
    document = f"<article>\n{heading}\n{extracted.html}\n</article>"
    markdown = apply_markdown_rules(ctx.html_to_markdown(document))
    ctx.attributions.add_web(item.title or "", item.source_url or url)
    return markdown
