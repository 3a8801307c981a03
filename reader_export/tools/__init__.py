"""
External tool adapters.

Each tool category is a narrow interface with one or more adapters;
Toolbox.discover probes the host and keeps the adapters that can run, in
configured priority order.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import RenderConfig
from .base import ChainExhausted, ToolError, find_executable, run_chain, run_command
from .converters import (
    DocxToMarkdown,
    HtmlToMarkdown,
    MarkdownifyHtmlConverter,
    PandocDocxConverter,
    PandocHtmlConverter,
)
from .images import ImageMagickRasterizer, Rasterizer, downscale_image
from .pdf import (
    GhostscriptMerger,
    PageCounter,
    PdfinfoCounter,
    PdfMerger,
    PdfplumberExtractor,
    PdfuniteMerger,
    PikepdfCounter,
    PikepdfMerger,
    QpdfCounter,
    QpdfMerger,
    TextExtractor,
    pdftotext_chain,
)
from .typesetter import PandocEpubTypesetter, PandocPdfTypesetter, RenderRequest, Typesetter

_MERGERS = {
    "qpdf": QpdfMerger,
    "pdfunite": PdfuniteMerger,
    "gs": GhostscriptMerger,
}


@dataclass
class Toolbox:
    """Adapters available to one export, each list in priority order."""

    html_converters: list[HtmlToMarkdown] = field(default_factory=list)
    docx_converters: list[DocxToMarkdown] = field(default_factory=list)
    pdf_typesetters: list[Typesetter] = field(default_factory=list)
    epub_typesetter: Typesetter | None = None
    rasterizers: list[Rasterizer] = field(default_factory=list)
    page_counters: list[PageCounter] = field(default_factory=list)
    text_extractors: list[TextExtractor] = field(default_factory=list)
    mergers: list[PdfMerger] = field(default_factory=list)

    @classmethod
    def discover(cls, cfg: RenderConfig) -> "Toolbox":
        timeout = cfg.command_timeout_seconds
        box = cls()
        pandoc = find_executable(cfg.pandoc)
        if pandoc:
            box.html_converters.append(PandocHtmlConverter(pandoc, timeout))
            box.docx_converters.append(PandocDocxConverter(pandoc, timeout))
            box.epub_typesetter = PandocEpubTypesetter(pandoc, timeout)
            for engine in cfg.pdf_engines:
                engine_path = find_executable(engine)
                if engine_path:
                    box.pdf_typesetters.append(
                        PandocPdfTypesetter(engine, engine_path, pandoc, cfg.margin, timeout)
                    )
        box.html_converters.append(MarkdownifyHtmlConverter())

        for name in ("magick", "convert"):
            binary = find_executable(name)
            if binary:
                box.rasterizers.append(ImageMagickRasterizer(binary))
                break

        pdfinfo = find_executable("pdfinfo")
        if pdfinfo:
            box.page_counters.append(PdfinfoCounter(pdfinfo))
        qpdf = find_executable("qpdf")
        if qpdf:
            box.page_counters.append(QpdfCounter(qpdf))
        box.page_counters.append(PikepdfCounter())

        pdftotext = find_executable("pdftotext")
        if pdftotext:
            box.text_extractors.extend(pdftotext_chain(pdftotext))
        box.text_extractors.append(PdfplumberExtractor())

        for name in cfg.merge_tools:
            if name == "pikepdf":
                box.mergers.append(PikepdfMerger())
                continue
            builder = _MERGERS.get(name)
            binary = find_executable(name) if builder else None
            if builder and binary:
                box.mergers.append(builder(binary, timeout))
        return box

    def describe(self) -> dict[str, list[str]]:
        return {
            "html_converters": [tool.name for tool in self.html_converters],
            "docx_converters": [tool.name for tool in self.docx_converters],
            "pdf_typesetters": [tool.name for tool in self.pdf_typesetters],
            "epub_typesetter": [self.epub_typesetter.name] if self.epub_typesetter else [],
            "rasterizers": [tool.name for tool in self.rasterizers],
            "page_counters": [tool.name for tool in self.page_counters],
            "text_extractors": [tool.name for tool in self.text_extractors],
            "mergers": [tool.name for tool in self.mergers],
        }


__all__ = [
    "ChainExhausted",
    "DocxToMarkdown",
    "HtmlToMarkdown",
    "PageCounter",
    "PdfMerger",
    "Rasterizer",
    "RenderRequest",
    "TextExtractor",
    "ToolError",
    "Toolbox",
    "Typesetter",
    "downscale_image",
    "find_executable",
    "run_chain",
    "run_command",
]
