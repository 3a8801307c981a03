from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

import httpx

from ..assembly.attribution import AttributionCollector
from ..config import AppConfig
from ..core.errors import ConversionError
from ..core.types import ExportFormat
from ..tools import ChainExhausted, Toolbox, run_chain

logger = logging.getLogger("reader_export.normalize")


@dataclass
class NormalizeContext:
    """Everything an item handler needs besides the item itself.

    Attributes:
        cfg: Application configuration
        toolbox: Discovered external tool adapters
        target: Output format of the export
        workdir: Per-job scratch directory; fragments reference files in it
        attributions: Citation collector for this export
        client: Shared HTTP client, if any
    """

    cfg: AppConfig
    toolbox: Toolbox
    target: str
    workdir: Path
    attributions: AttributionCollector
    client: httpx.Client | None = None

    @property
    def is_pdf(self) -> bool:
        return self.target == ExportFormat.PDF

    def html_to_markdown(self, html: str, media_dir: Path | None = None) -> str:
        media = media_dir or self.workdir
        try:
            converter, markdown = run_chain(
                self.toolbox.html_converters, lambda tool: tool.convert(html, media)
            )
        except ChainExhausted as exc:
            raise ConversionError(f"HTML to markdown conversion failed: {exc}") from exc
        logger.debug("Converted HTML with %s", converter.name)
        return markdown

    def count_pages(self, pdf_path: Path) -> int | None:
        try:
            _, pages = run_chain(self.toolbox.page_counters, lambda counter: counter.count(pdf_path))
        except ChainExhausted as exc:
            logger.warning("Could not count pages of %s: %s", pdf_path.name, exc)
            return None
        return pages
