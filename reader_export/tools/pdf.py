"""
PDF tools: page counting, text extraction and merging.

Each category has command-line adapters (poppler, qpdf, ghostscript) and a
pure-Python adapter (pikepdf / pdfplumber) so exports keep working on hosts
where only the Python dependencies are installed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
import re

import pdfplumber
import pikepdf

from .base import run_command


class PageCounter(ABC):
    name = "page-counter"

    @abstractmethod
    def count(self, pdf_path: Path) -> int:
        raise NotImplementedError


class PdfinfoCounter(PageCounter):
    name = "pdfinfo"

    def __init__(self, binary: str = "pdfinfo"):
        self.binary = binary

    def count(self, pdf_path: Path) -> int:
        res = run_command([self.binary, pdf_path], timeout=10)
        match = re.search(r"Pages:\s*(\d+)", res.stdout)
        if not match:
            raise ValueError("pdfinfo output has no page count")
        return int(match.group(1))


class QpdfCounter(PageCounter):
    name = "qpdf"

    def __init__(self, binary: str = "qpdf"):
        self.binary = binary

    def count(self, pdf_path: Path) -> int:
        res = run_command([self.binary, "--show-npages", pdf_path], timeout=10)
        return int(res.stdout.strip())


class PikepdfCounter(PageCounter):
    name = "pikepdf"

    def count(self, pdf_path: Path) -> int:
        with pikepdf.open(pdf_path) as pdf:
            return len(pdf.pages)


class TextExtractor(ABC):
    name = "text-extractor"

    @abstractmethod
    def extract(self, pdf_path: Path) -> str | None:
        raise NotImplementedError


class PdftotextExtractor(TextExtractor):
    """pdftotext with one argument variant; several variants form a chain."""

    def __init__(self, binary: str, args: list[str], name: str, min_chars: int = 50):
        self.binary = binary
        self.args = list(args)
        self.name = name
        self.min_chars = min_chars

    def extract(self, pdf_path: Path) -> str | None:
        res = run_command([self.binary, *self.args, pdf_path, "-"], timeout=45)
        text = res.stdout.strip()
        return text if len(text) > self.min_chars else None


class PdfplumberExtractor(TextExtractor):
    name = "pdfplumber"

    def __init__(self, min_chars: int = 50):
        self.min_chars = min_chars

    def extract(self, pdf_path: Path) -> str | None:
        pages: list[str] = []
        with pdfplumber.open(pdf_path) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
        text = "\f".join(pages).strip()
        return text if len(text) > self.min_chars else None


def pdftotext_chain(binary: str) -> list[TextExtractor]:
    return [
        PdftotextExtractor(binary, ["-raw"], "pdftotext-raw"),
        PdftotextExtractor(binary, ["-layout", "-nopgbrk"], "pdftotext-layout"),
        PdftotextExtractor(binary, ["-enc", "UTF-8", "-raw"], "pdftotext-utf8"),
    ]


class PdfMerger(ABC):
    """Concatenates PDFs preserving input order."""

    name = "merger"

    @abstractmethod
    def merge(self, inputs: list[Path], output: Path) -> Path:
        raise NotImplementedError


def _require_output(output: Path) -> Path:
    if not output.exists() or output.stat().st_size == 0:
        raise FileNotFoundError(f"merge produced no output: {output}")
    return output


class QpdfMerger(PdfMerger):
    name = "qpdf"

    def __init__(self, binary: str = "qpdf", timeout: float | None = 300.0):
        self.binary = binary
        self.timeout = timeout

    def merge(self, inputs: list[Path], output: Path) -> Path:
        # exit code 3 means "succeeded with warnings"
        run_command(
            [self.binary, "--warning-exit-0", "--empty", "--pages", *inputs, "--", output],
            timeout=self.timeout,
            ok_codes=(0, 3),
        )
        return _require_output(output)


class PdfuniteMerger(PdfMerger):
    name = "pdfunite"

    def __init__(self, binary: str = "pdfunite", timeout: float | None = 300.0):
        self.binary = binary
        self.timeout = timeout

    def merge(self, inputs: list[Path], output: Path) -> Path:
        run_command([self.binary, *inputs, output], timeout=self.timeout)
        return _require_output(output)


class GhostscriptMerger(PdfMerger):
    name = "gs"

    def __init__(self, binary: str = "gs", timeout: float | None = 300.0):
        self.binary = binary
        self.timeout = timeout

    def merge(self, inputs: list[Path], output: Path) -> Path:
        run_command(
            [self.binary, "-dBATCH", "-dNOPAUSE", "-q", "-sDEVICE=pdfwrite", f"-sOutputFile={output}", *inputs],
            timeout=self.timeout,
        )
        return _require_output(output)


class PikepdfMerger(PdfMerger):
    name = "pikepdf"

    def merge(self, inputs: list[Path], output: Path) -> Path:
        with pikepdf.new() as merged:
            sources = [pikepdf.open(path) for path in inputs]
            try:
                for src in sources:
                    merged.pages.extend(src.pages)
                merged.save(output)
            finally:
                for src in sources:
                    src.close()
        return _require_output(output)
