"""
Content normalization: one item in, one markdown fragment or native PDF out.

The Normalizer dispatches on item type. Item handlers raise ItemError
subclasses for item-scoped failures; the sequencer records those and
continues with the next item.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import httpx

from ..assembly.attribution import AttributionCollector
from ..config import AppConfig
from ..core.errors import ConversionError
from ..core.types import Fragment, Item, ItemType, MarkdownFragment
from ..tools import Toolbox
from .context import NormalizeContext
from .documents import normalize_docx, normalize_pdf
from .headings import heading_fragment, title_page_fragment, title_page_latex
from .images import normalize_image
from .svg import SvgResolver
from .web import normalize_web

logger = logging.getLogger("reader_export.normalize")

Handler = Callable[[Item, NormalizeContext], Fragment]


class Normalizer:
    """Converts items into fragments for one export target.

    Args:
        cfg: Application configuration
        toolbox: Discovered external tool adapters
        target: Output format
        attributions: Collector receiving citations of fetched sources
        client: Optional shared HTTP client
    """

    def __init__(
        self,
        cfg: AppConfig,
        toolbox: Toolbox,
        target: str,
        attributions: AttributionCollector | None = None,
        client: httpx.Client | None = None,
    ):
        self.cfg = cfg
        self.toolbox = toolbox
        self.target = target
        self.attributions = attributions or AttributionCollector(cfg.wikipedia)
        self.client = client
        self._handlers: dict[str, Handler] = {
            ItemType.HEADING: lambda item, ctx: heading_fragment(item),
            ItemType.TITLEPAGE: lambda item, ctx: title_page_fragment(item),
            ItemType.URL: normalize_web,
            ItemType.WIKIPEDIA: normalize_web,
            ItemType.IMAGE: normalize_image,
            ItemType.PDF: normalize_pdf,
            ItemType.DOCX: normalize_docx,
        }

    def context(self, workdir: Path) -> NormalizeContext:
        return NormalizeContext(
            cfg=self.cfg,
            toolbox=self.toolbox,
            target=self.target,
            workdir=workdir,
            attributions=self.attributions,
            client=self.client,
        )

    def normalize(self, item: Item, workdir: Path) -> Fragment:
        """Normalize one item.

        Markdown bound for PDF output has its SVG references rasterised.

        Raises:
            ItemError: The item cannot be included (or, for NoExtractableText,
                only as a placeholder)
        """
        handler = self._handlers.get(item.type)
        if handler is None:
            raise ConversionError(f"Unsupported item type: {item.type}")
        ctx = self.context(workdir)
        fragment = handler(item, ctx)
        if isinstance(fragment, MarkdownFragment) and ctx.is_pdf:
            fragment.markdown = self.resolve_svgs(fragment.markdown, workdir)
        return fragment

    def resolve_svgs(self, markdown: str, workdir: Path) -> str:
        resolver = SvgResolver(workdir, self.toolbox.rasterizers, self.cfg.fetch, self.client)
        return resolver.resolve(markdown)

    def title_page_source(self, item: Item) -> str:
        return title_page_latex(item)
