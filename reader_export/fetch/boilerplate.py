"""
Boilerplate removal as rule tables.

HTML rules match elements by CSS selector or by a phrase found in short
element text; markdown rules are regular expressions applied line-wise or
to whole sections. Each table is consumed by a single generic pass, so the
filters can be extended from configuration without touching the pass.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError


@dataclass(frozen=True)
class HtmlRule:
    """Remove elements matching selector, or short elements matching phrase.

    Attributes:
        selector: CSS selector for elements to remove
        phrase: Regex searched in element text (case-insensitive)
        max_chars: Phrase rules only apply to elements with shorter text
        scope: Elements a phrase rule inspects
    """

    selector: str | None = None
    phrase: str | None = None
    max_chars: int = 100
    scope: str = "p, div, section, aside, footer, header, h2, h3, h4, h5, h6"


@dataclass(frozen=True)
class MarkdownRule:
    """Regex replacement over markdown.

    section=True also removes everything after a matching heading up to the
    next heading.
    """

    pattern: str
    replacement: str = ""
    section: bool = False


# Elements removed before main-content extraction.
JUNK_SELECTORS = [
    "[role='navigation']", "[role='complementary']", "[role='banner']", "[role='contentinfo']",
    ".sidebar", ".side-bar", ".widget", ".ad", ".ads", ".advert", ".advertisement",
    ".share", ".social", ".social-share", ".share-buttons", ".social-media",
    ".menu", ".nav", ".navigation", ".breadcrumbs", ".breadcrumb",
    ".cookie", ".gdpr", ".newsletter", ".subscribe", ".subscription",
    ".pagination", ".comments", ".comment", ".related", ".recirc", ".recommendations",
    ".footer", ".header", ".hero", ".masthead",
    ".promo", ".sponsored", ".outbrain", ".taboola",
    ".attribution", ".byline-block", ".author-info",
    ".tags", ".tag-list", ".categories",
    ".more-from", ".read-more", ".continue-reading",
    ".editor-picks", ".editor-choice", ".trending",
    ".latest", ".popular", ".most-read",
    "script", "style", "link[rel='stylesheet']", "meta",
]

_ARTIFACT_SELECTORS = [
    "[class*='nav']", "[class*='menu']", "[class*='breadcrumb']", "[id*='nav']", "[id*='menu']",
    "[class*='share']", "[class*='social']", "[id*='share']",
    "[class*='related']", "[class*='recommend']", "[class*='more-from']",
    "[class*='editor-pick']", "[class*='trending']", "[class*='popular']",
    "[class*='latest']", "[class*='read-next']",
    "[class*='ad-']", "[class*='advertisement']", "[class*='promo']",
    "[class*='tag']", "[class*='category']", "[class*='topics']",
    "[class*='footer']",
    "[class*='comment']", "[id*='comment']",
    "[class*='newsletter']", "[class*='subscribe']", "[class*='signup']",
]

_ARTIFACT_PHRASES = [
    r"more from", r"latest from", r"editor'?s picks?", r"trending",
    r"related articles?", r"read more", r"continue reading",
    r"sign up", r"newsletter", r"subscribe",
    r"share this", r"follow us",
    r"topics:?", r"tags:?", r"categories:?",
    r"filed under", r"posted in",
    r"copyright", r"all rights reserved",
    r"attributions?\.?$", r"sources?\.?$",
]

DEFAULT_HTML_RULES: list[HtmlRule] = [HtmlRule(selector=s) for s in _ARTIFACT_SELECTORS] + [
    HtmlRule(phrase=p) for p in _ARTIFACT_PHRASES
]

_HEADING_WORDS = (
    r"More from|Latest from|Editor'?s? Picks?|Trending|Related Articles?|Read More|Topics?|Tags?"
    r"|Categories|Filed Under|Posted In|Attributions?|Sources?|Share This|Follow Us|Sign Up|Newsletter|Subscribe"
)

DEFAULT_MARKDOWN_RULES: list[MarkdownRule] = [
    MarkdownRule(rf"^#{{1,6}}\s*(?:{_HEADING_WORDS})\s*$", section=True),
    MarkdownRule(r"^.*?(?:More from|Latest from|Editor'?s? Picks?).*$"),
    MarkdownRule(r"^.*?(?:Attributions?|Sources?)\s*\.?\s*$"),
    MarkdownRule(r"^\d+\s*$"),
]


def remove_selectors(soup: BeautifulSoup, selectors: list[str]) -> None:
    for selector in selectors:
        try:
            matches = soup.select(selector)
        except SelectorSyntaxError:
            continue
        for element in matches:
            element.extract()


def apply_html_rules(html: str, rules: list[HtmlRule] | None = None, max_nav_items: int = 10) -> str:
    """Strip boilerplate elements from extracted article HTML.

    Besides the rule table, short lists whose every item is under 50
    characters are treated as navigation and dropped.
    """
    if not html:
        return html
    rules = DEFAULT_HTML_RULES if rules is None else rules
    soup = BeautifulSoup(html, "html.parser")

    remove_selectors(soup, [rule.selector for rule in rules if rule.selector])

    phrase_rules = [rule for rule in rules if rule.phrase]
    for scope in {rule.scope for rule in phrase_rules}:
        compiled = [
            (re.compile(rule.phrase, re.IGNORECASE), rule.max_chars) for rule in phrase_rules if rule.scope == scope
        ]
        for element in soup.select(scope):
            text = element.get_text().strip()
            if any(len(text) < max_chars and pattern.search(text) for pattern, max_chars in compiled):
                element.extract()

    for listing in soup.find_all(["ul", "ol"]):
        items = listing.find_all("li")
        if 0 < len(items) < max_nav_items and all(len(li.get_text().strip()) < 50 for li in items):
            listing.extract()

    body = soup.body
    return body.decode_contents() if body is not None else str(soup)


def apply_markdown_rules(markdown: str, rules: list[MarkdownRule] | None = None) -> str:
    rules = DEFAULT_MARKDOWN_RULES if rules is None else rules
    text = markdown
    for rule in rules:
        pattern = rule.pattern
        if rule.section:
            pattern = pattern + r"[\s\S]*?(?=^#{1,6}\s|\Z)"
        text = re.sub(pattern, rule.replacement, text, flags=re.IGNORECASE | re.MULTILINE)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
