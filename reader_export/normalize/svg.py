"""
SVG reference resolution for PDF output.

LaTeX engines cannot embed SVG, so before a PDF render every SVG image
reference in a fragment is rasterised to PNG inside the workdir. When no
rasterizer succeeds the image degrades to its alt text in italics.
"""

from __future__ import annotations

import logging
from pathlib import Path
import re
import uuid

import httpx

from ..config import FetchConfig
from ..core.errors import ItemError
from ..tools import ChainExhausted, Rasterizer, run_chain
from ..fetch.fetcher import download_to_file
from ..utils.logging import log_event

logger = logging.getLogger("reader_export.normalize")

_MD_SVG = re.compile(r"!\[([^\]]*)\]\(([^)\s]+?\.svg(?:\?[^)\s]*)?)\)", re.IGNORECASE)
_HTML_SVG = re.compile(
    r"<img\b([^>]*?)\bsrc\s*=\s*[\"']([^\"']+?\.svg(?:\?[^\"']*)?)[\"']([^>]*)>", re.IGNORECASE
)
_ALT = re.compile(r"alt\s*=\s*[\"']([^\"']*)[\"']", re.IGNORECASE)
_INLINE_SVG = re.compile(r"<svg[\s\S]*?</svg>", re.IGNORECASE)
_RAW_FENCE = re.compile(r"^\s*\{=(?:latex|html)\}\s*$", re.IGNORECASE | re.MULTILINE)


class SvgResolver:
    """Rewrites SVG image references in markdown to rasterised PNGs."""

    def __init__(
        self,
        workdir: Path,
        rasterizers: list[Rasterizer],
        fetch_cfg: FetchConfig,
        client: httpx.Client | None = None,
    ):
        self.workdir = workdir
        self.rasterizers = rasterizers
        self.fetch_cfg = fetch_cfg
        self.client = client

    def resolve(self, markdown: str, base_dir: Path | None = None) -> str:
        """Return markdown with every SVG reference rasterised or replaced.

        Args:
            markdown: Fragment markdown
            base_dir: Directory relative references resolve against
                (defaults to the workdir)
        """
        base = base_dir or self.workdir
        if _INLINE_SVG.search(markdown):
            markdown = _RAW_FENCE.sub("", markdown)

        replacements: dict[str, str] = {}
        for match in _MD_SVG.finditer(markdown):
            alt, src = match.group(1), match.group(2)
            if match.group(0) not in replacements:
                replacements[match.group(0)] = self._to_png_markdown(src, alt, base)

        for match in _HTML_SVG.finditer(markdown):
            full, src = match.group(0), match.group(2)
            alt_match = _ALT.search(full)
            alt = alt_match.group(1) if alt_match else ""
            if full not in replacements:
                replacements[full] = self._to_png_markdown(src, alt, base)

        for original, replacement in replacements.items():
            markdown = markdown.replace(original, replacement)
        return markdown

    def _to_png_markdown(self, src: str, alt: str, base: Path) -> str:
        token = uuid.uuid4().hex[:6]
        try:
            svg_path = self._local_svg(src, base, token)
            png_path = self.workdir / f"{token}.png"
            run_chain(self.rasterizers, lambda tool: tool.rasterize(svg_path, png_path))
        except (ChainExhausted, ItemError, OSError) as exc:
            log_event(logger, "SVG rasterisation failed", level=logging.WARNING, event="svg_fallback", src=src,
                      error=str(exc))
            return f"*{alt}*" if alt else ""
        return f"![{alt}]({png_path.name})"

    def _local_svg(self, src: str, base: Path, token: str) -> Path:
        if src.startswith("//"):
            src = "https:" + src
        if re.match(r"^https?://", src, re.IGNORECASE):
            dest = self.workdir / f"{token}.svg"
            return download_to_file(src, dest, self.fetch_cfg, self.client)
        path = Path(src.split("?", 1)[0])
        return path if path.is_absolute() else base / path
