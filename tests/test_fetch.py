"""Tests for page fetching, content extraction and boilerplate rules."""

from __future__ import annotations

import httpx
import pytest

from fakes import ARTICLE_HTML, mock_client
from reader_export.config import ExtractConfig, FetchConfig
from reader_export.core.errors import BotProtectionDetected, ItemFetchError
from reader_export.fetch import apply_html_rules, apply_markdown_rules, extract_main_html, fetch_html, normalize_url
from reader_export.fetch.fetcher import download_to_file

CHALLENGE = "<html><title>Just a moment...</title><body>checking</body></html>"


def _fetch_cfg() -> FetchConfig:
    return FetchConfig(retry_delay_seconds=0)


def test_normalize_url() -> None:
    assert normalize_url("example.com/a") == "https://example.com/a"
    assert normalize_url("//cdn.example.com/x.svg") == "https://cdn.example.com/x.svg"
    assert normalize_url(" http://example.com ") == "http://example.com"


def test_fetch_retries_with_next_profile_after_challenge() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["User-Agent"])
        if len(seen) == 1:
            return httpx.Response(503, text=CHALLENGE)
        return httpx.Response(200, text=ARTICLE_HTML)

    cfg = _fetch_cfg()
    result = fetch_html("https://example.com/a", cfg, mock_client(handler))
    assert result.attempts == 2
    assert "Supply and demand" in result.text
    assert seen == cfg.user_agents[:2]


def test_fetch_challenge_on_every_profile_is_bot_protection() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        return httpx.Response(200, text=CHALLENGE)

    cfg = _fetch_cfg()
    with pytest.raises(BotProtectionDetected) as excinfo:
        fetch_html("https://blocked.example/", cfg, mock_client(handler))
    assert len(calls) == len(cfg.user_agents)
    assert excinfo.value.url == "https://blocked.example/"
    assert excinfo.value.kind == "bot_protection"


def test_challenge_then_plain_failure_stays_bot_protection() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        if len(calls) == 1:
            return httpx.Response(403, text=CHALLENGE)
        if len(calls) == 2:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(403, text="Forbidden")

    cfg = _fetch_cfg()
    with pytest.raises(BotProtectionDetected) as excinfo:
        fetch_html("https://guarded.example/a", cfg, mock_client(handler))
    assert len(calls) == len(cfg.user_agents)
    assert "HTTP 403" in str(excinfo.value)
    assert excinfo.value.kind == "bot_protection"


def test_fetch_http_errors_on_every_profile() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="not here")

    with pytest.raises(ItemFetchError) as excinfo:
        fetch_html("https://example.com/missing", _fetch_cfg(), mock_client(handler))
    assert "HTTP 404" in str(excinfo.value)
    assert not isinstance(excinfo.value, BotProtectionDetected)


def test_fetch_network_error_is_item_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ItemFetchError):
        fetch_html("https://down.example/", _fetch_cfg(), mock_client(handler))


def test_download_to_file(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("missing.png"):
            return httpx.Response(404)
        return httpx.Response(200, content=b"\x89PNG")

    client = mock_client(handler)
    dest = download_to_file("example.com/pic.png", tmp_path / "pic.png", _fetch_cfg(), client)
    assert dest.read_bytes() == b"\x89PNG"
    with pytest.raises(ItemFetchError):
        download_to_file("https://example.com/missing.png", tmp_path / "x.png", _fetch_cfg(), client)


def test_extract_selectors_strategy_drops_page_chrome() -> None:
    page = extract_main_html(ARTICLE_HTML, ExtractConfig(primary="selectors"))
    assert page.method == "selectors"
    assert page.title == "Page A"
    assert "Supply and demand" in page.html
    assert "Footer text" not in page.html
    assert "Home" not in page.html


def test_extract_paragraphs_strategy_when_no_container() -> None:
    long = "This paragraph carries enough words to be considered real article content."
    raw = f"<html><body><div><p>{long}</p><p>{long} Again.</p><p>short</p></div></body></html>"
    cfg = ExtractConfig(primary="selectors", fallback=["paragraphs"])
    page = extract_main_html(raw, cfg)
    assert page.method == "paragraphs"
    assert "short" not in page.html
    assert page.html.count("<p>") == 2


def test_extract_falls_back_to_body() -> None:
    raw = "<html><body><div>" + "word " * 40 + "</div></body></html>"
    cfg = ExtractConfig(primary="unknown", fallback=["selectors"])
    page = extract_main_html(raw, cfg)
    assert page.method == "body"
    assert "word word" in page.html


def test_html_rules_strip_share_blocks_and_nav_lists() -> None:
    html = (
        '<div class="share-buttons">Share</div>'
        "<p>Real paragraph text that is long enough to stay in the article body for sure.</p>"
        "<ul><li>Home</li><li>About</li></ul>"
        "<p>Read more</p>"
    )
    cleaned = apply_html_rules(html)
    assert "Real paragraph" in cleaned
    assert "Share" not in cleaned
    assert "About" not in cleaned
    assert "Read more" not in cleaned


def test_markdown_rules_remove_boilerplate_sections() -> None:
    markdown = (
        "# Article\n\nBody text.\n\n## Related Articles\n\n- [Other](x)\n- [More](y)\n\n"
        "## Topic modelling\n\nKept section.\n\n42\n"
    )
    cleaned = apply_markdown_rules(markdown)
    assert "Related Articles" not in cleaned
    assert "[Other]" not in cleaned
    assert "## Topic modelling" in cleaned
    assert "Kept section." in cleaned
    assert "42" not in cleaned
