"""Fake tool adapters and helpers shared by the tests."""

from __future__ import annotations

from pathlib import Path

import httpx

from reader_export.config import AppConfig
from reader_export.tools import (
    DocxToMarkdown,
    PageCounter,
    PdfMerger,
    Rasterizer,
    RenderRequest,
    TextExtractor,
    ToolError,
    Toolbox,
    Typesetter,
)
from reader_export.tools.converters import MarkdownifyHtmlConverter


class FakeTypesetter(Typesetter):
    """Writes a fake PDF whose body is the concatenated markdown inputs."""

    def __init__(self, name: str = "fake-engine", fail: bool = False):
        self.name = name
        self.fail = fail
        self.requests: list[RenderRequest] = []

    def render(self, request: RenderRequest) -> Path:
        self.requests.append(request)
        if self.fail:
            raise ToolError([self.name], "engine crashed", 1)
        parts = []
        for path in request.inputs:
            parts.append(path.read_text(encoding="utf-8") if path.suffix == ".md" else path.name)
        request.output.write_bytes(b"%PDF-1.4 fake\n" + "\n".join(parts).encode("utf-8"))
        return request.output


class FakeMerger(PdfMerger):
    def __init__(self, name: str = "fake-merge", fail: bool = False):
        self.name = name
        self.fail = fail
        self.calls: list[list[Path]] = []

    def merge(self, inputs: list[Path], output: Path) -> Path:
        self.calls.append(list(inputs))
        if self.fail:
            raise ToolError([self.name], "merge crashed", 2)
        output.write_bytes(b"".join(path.read_bytes() for path in inputs))
        return output


class FakeRasterizer(Rasterizer):
    name = "fake-raster"

    def rasterize(self, svg_path: Path, png_path: Path) -> Path:
        if not svg_path.exists():
            raise FileNotFoundError(svg_path)
        png_path.write_bytes(b"\x89PNG fake")
        return png_path


class FakeTextExtractor(TextExtractor):
    name = "fake-text"

    def __init__(self, text: str | None):
        self.text = text

    def extract(self, pdf_path: Path) -> str | None:
        return self.text


class FakePageCounter(PageCounter):
    name = "fake-counter"

    def __init__(self, pages: int):
        self.pages = pages

    def count(self, pdf_path: Path) -> int:
        return self.pages


class FakeDocxConverter(DocxToMarkdown):
    name = "fake-docx"

    def __init__(self, markdown: str):
        self.markdown = markdown

    def convert(self, docx_path: Path, media_dir: Path) -> str:
        return self.markdown


def make_toolbox(**overrides) -> Toolbox:
    overrides.setdefault("html_converters", [MarkdownifyHtmlConverter()])
    return Toolbox(**overrides)


def make_config(tmp_path: Path) -> AppConfig:
    cfg = AppConfig()
    cfg.fetch.retry_delay_seconds = 0
    cfg.extract.primary = "selectors"
    cfg.storage.uploads_dir = str(tmp_path / "uploads")
    cfg.storage.exports_dir = str(tmp_path / "exports")
    cfg.storage.tmp_dir = str(tmp_path / "tmp")
    cfg.logging.console = False
    (tmp_path / "uploads").mkdir(exist_ok=True)
    return cfg


def mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)


ARTICLE_HTML = """<html><head><title>Page A</title></head>
<body>
<nav><a href="/">Home</a></nav>
<article>
<p>Supply and demand describe how prices form in competitive markets over time.</p>
<p>When demand rises while supply stays fixed, prices usually increase accordingly.</p>
</article>
<footer>Footer text</footer>
</body></html>"""
