"""
Document converters producing markdown.

Two HTML converters are available: pandoc (preferred, extracts media into
the work directory) and markdownify (pure Python, used when pandoc is not
installed). DOCX conversion requires pandoc.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
import uuid

from bs4 import BeautifulSoup
from markdownify import markdownify

from .base import run_command


class HtmlToMarkdown(ABC):
    """Converter interface: HTML string to GitHub-flavoured markdown."""

    name = "html"

    @abstractmethod
    def convert(self, html: str, media_dir: Path) -> str:
        raise NotImplementedError


class DocxToMarkdown(ABC):
    name = "docx"

    @abstractmethod
    def convert(self, docx_path: Path, media_dir: Path) -> str:
        raise NotImplementedError


class PandocHtmlConverter(HtmlToMarkdown):
    name = "pandoc"

    def __init__(self, pandoc: str = "pandoc", timeout: float | None = 120.0):
        self.pandoc = pandoc
        self.timeout = timeout

    def convert(self, html: str, media_dir: Path) -> str:
        token = uuid.uuid4().hex[:8]
        src = media_dir / f"page-{token}.html"
        out = media_dir / f"page-{token}.md"
        src.write_text(html, encoding="utf-8")
        try:
            run_command(
                [
                    self.pandoc,
                    src,
                    "-f",
                    "html",
                    "-t",
                    "gfm",
                    "--extract-media",
                    media_dir,
                    "--strip-comments",
                    "--wrap=none",
                    "-o",
                    out,
                ],
                timeout=self.timeout,
            )
            return out.read_text(encoding="utf-8")
        finally:
            src.unlink(missing_ok=True)
            out.unlink(missing_ok=True)


class MarkdownifyHtmlConverter(HtmlToMarkdown):
    name = "markdownify"

    def convert(self, html: str, media_dir: Path) -> str:
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup.find_all(["script", "style"]):
            tag.decompose()
        content = soup.body if soup.body is not None else soup
        return markdownify(str(content), heading_style="ATX")


class PandocDocxConverter(DocxToMarkdown):
    name = "pandoc"

    def __init__(self, pandoc: str = "pandoc", timeout: float | None = 120.0):
        self.pandoc = pandoc
        self.timeout = timeout

    def convert(self, docx_path: Path, media_dir: Path) -> str:
        res = run_command(
            [self.pandoc, docx_path, "-f", "docx", "-t", "gfm", "--extract-media", media_dir, "--wrap=none"],
            timeout=self.timeout,
        )
        return res.stdout
