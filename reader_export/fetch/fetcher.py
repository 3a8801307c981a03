"""
HTTP fetching with browser request profiles.

Pages are requested with navigation headers of a regular browser. When a
server answers with a bot-protection challenge or an error, the request is
retried with the next User-Agent profile. A challenge that survives every
profile raises BotProtectionDetected so callers can report it distinctly
from ordinary fetch failures.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
import time
from typing import Iterator

import httpx

from ..config import FetchConfig
from ..core.errors import BotProtectionDetected, ItemFetchError

logger = logging.getLogger("reader_export.fetch")

_PAGE_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
_IMAGE_ACCEPT = "image/webp,image/apng,image/*,*/*;q=0.8"


@dataclass
class FetchResult:
    """Result of a successful page fetch.

    Attributes:
        url: The URL that was requested
        final_url: URL after redirects
        status_code: HTTP status code
        text: The response body
        headers: Response headers
        attempts: Number of profiles tried
    """

    url: str
    final_url: str
    status_code: int
    text: str
    headers: dict[str, str] = field(default_factory=dict)
    attempts: int = 1


def browser_headers(user_agent: str, accept: str = _PAGE_ACCEPT) -> dict[str, str]:
    headers = {
        "User-Agent": user_agent,
        "Accept": accept,
        "Accept-Language": "en-US,en;q=0.9",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }
    if accept == _PAGE_ACCEPT:
        headers.update(
            {
                "DNT": "1",
                "Sec-Fetch-Dest": "document",
                "Sec-Fetch-Mode": "navigate",
                "Sec-Fetch-Site": "none",
                "Cache-Control": "max-age=0",
            }
        )
    else:
        headers["Referer"] = "https://www.google.com/"
    return headers


def normalize_url(url: str) -> str:
    """Add https:// to scheme-less URLs and protocol-relative references."""
    url = (url or "").strip()
    if url.startswith("//"):
        return "https:" + url
    if re.match(r"^[a-zA-Z][a-zA-Z0-9+.-]*://", url):
        return url
    return f"https://{url}"


def detect_challenge(body: str, markers: list[str]) -> str | None:
    """Return the first bot-protection marker found in a response body."""
    for marker in markers:
        if marker in body:
            return marker
    return None


@contextmanager
def open_client(cfg: FetchConfig, client: httpx.Client | None = None) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    with httpx.Client(timeout=cfg.timeout_seconds, follow_redirects=True, trust_env=cfg.trust_env) as owned:
        yield owned


def fetch_html(url: str, cfg: FetchConfig, client: httpx.Client | None = None) -> FetchResult:
    """Fetch a page, cycling through browser profiles.

    Args:
        url: The page URL
        cfg: Fetch configuration (profiles, markers, timeouts)
        client: Optional shared httpx client

    Returns:
        FetchResult for the first profile that got a clean 2xx/3xx page

    Raises:
        BotProtectionDetected: A challenge was seen and no profile got through
        ItemFetchError: Network or HTTP errors on every profile
    """
    profiles = cfg.user_agents or [""]
    last_error = "no attempt made"
    challenge_marker: str | None = None
    with open_client(cfg, client) as http:
        for attempt, user_agent in enumerate(profiles, start=1):
            is_last = attempt == len(profiles)
            try:
                resp = http.get(url, headers=browser_headers(user_agent))
            except httpx.HTTPError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning("Attempt %d/%d failed for %s: %s", attempt, len(profiles), url, last_error)
                if not is_last:
                    time.sleep(cfg.retry_delay_seconds / 2)
                continue

            body = resp.text
            marker = detect_challenge(body, cfg.challenge_markers)
            if marker:
                challenge_marker = marker
                logger.warning(
                    "Bot protection detected on %s (attempt %d/%d, marker %r)", url, attempt, len(profiles), marker
                )
                if is_last:
                    raise BotProtectionDetected(
                        f"Site requires browser verification ({marker}). Cannot fetch: {url}", url=url
                    )
                time.sleep(cfg.retry_delay_seconds)
                continue

            if resp.status_code >= 400:
                last_error = f"HTTP {resp.status_code} {resp.reason_phrase}"
                logger.warning("Attempt %d/%d failed for %s: %s", attempt, len(profiles), url, last_error)
                if not is_last:
                    time.sleep(cfg.retry_delay_seconds / 2)
                continue

            return FetchResult(
                url=url,
                final_url=str(resp.url),
                status_code=resp.status_code,
                text=body,
                headers=dict(resp.headers),
                attempts=attempt,
            )

    if challenge_marker:
        raise BotProtectionDetected(
            f"Site requires browser verification ({challenge_marker}); last attempt: {last_error}. Cannot fetch: {url}",
            url=url,
        )
    raise ItemFetchError(f"Fetch failed for {url} after {len(profiles)} attempts: {last_error}", url=url)


def download_to_file(url: str, dest: Path, cfg: FetchConfig, client: httpx.Client | None = None) -> Path:
    """Download a binary resource (image, SVG) with browser headers."""
    user_agent = cfg.user_agents[0] if cfg.user_agents else ""
    with open_client(cfg, client) as http:
        try:
            resp = http.get(normalize_url(url), headers=browser_headers(user_agent, _IMAGE_ACCEPT))
        except httpx.HTTPError as exc:
            raise ItemFetchError(f"Download failed for {url}: {exc}", url=url) from exc
    if resp.status_code >= 400:
        raise ItemFetchError(f"Download failed {resp.status_code} for {url}", url=url)
    dest.write_bytes(resp.content)
    return dest
