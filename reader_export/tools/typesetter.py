"""Typesetting engines driven through pandoc."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from .base import run_command


@dataclass
class RenderRequest:
    """One typesetting invocation.

    Attributes:
        inputs: Markdown files in document order
        output: Target file
        resource_path: Directory used to resolve relative images
        metadata_file: Optional pandoc YAML metadata file
        toc: Whether to emit a table of contents
        css: Stylesheet for EPUB output
        extra_args: Additional pandoc arguments
    """

    inputs: list[Path]
    output: Path
    resource_path: Path
    metadata_file: Path | None = None
    toc: bool = False
    css: Path | None = None
    extra_args: list[str] = field(default_factory=list)


class Typesetter(ABC):
    """Interface for anything that turns markdown files into a document."""

    name = "typesetter"

    @abstractmethod
    def render(self, request: RenderRequest) -> Path:
        raise NotImplementedError


def _common_args(request: RenderRequest) -> list[str]:
    args: list[str] = []
    if request.metadata_file is not None:
        args += ["--metadata-file", str(request.metadata_file.resolve())]
    args += ["--resource-path", str(request.resource_path.resolve())]
    if request.toc:
        args.append("--toc")
    return args


class PandocPdfTypesetter(Typesetter):
    """pandoc with a LaTeX PDF engine (tectonic, xelatex, ...)."""

    def __init__(
        self,
        engine: str,
        engine_path: str,
        pandoc: str = "pandoc",
        margin: str = "1in",
        timeout: float | None = 300.0,
    ):
        self.name = engine
        self.engine_path = engine_path
        self.pandoc = pandoc
        self.margin = margin
        self.timeout = timeout

    def render(self, request: RenderRequest) -> Path:
        # pandoc runs inside the resource dir, so file arguments must be absolute
        cmd = [self.pandoc, *_common_args(request), "--pdf-engine", self.engine_path]
        cmd += ["-V", f"geometry:margin={self.margin}", *request.extra_args]
        cmd += ["-o", str(request.output.resolve()), *[str(p.resolve()) for p in request.inputs]]
        run_command(cmd, timeout=self.timeout, cwd=request.resource_path)
        return request.output


class PandocEpubTypesetter(Typesetter):
    name = "pandoc-epub"

    def __init__(self, pandoc: str = "pandoc", timeout: float | None = 300.0):
        self.pandoc = pandoc
        self.timeout = timeout

    def render(self, request: RenderRequest) -> Path:
        cmd = [self.pandoc, *_common_args(request)]
        if request.css is not None:
            cmd += ["--css", str(request.css.resolve())]
        cmd += [*request.extra_args, "-o", str(request.output.resolve())]
        cmd += [str(p.resolve()) for p in request.inputs]
        run_command(cmd, timeout=self.timeout, cwd=request.resource_path)
        return request.output
