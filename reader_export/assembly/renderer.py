"""
Rendering of an AssemblySequence into Markdown, EPUB or PDF components.

Markdown is assembled in-process. EPUB is a single pandoc run over every
fragment. PDF renders each markdown batch separately (only the first batch
carries the table of contents) and returns the ordered component list for
the merger, with the title page first when there is one.
"""

from __future__ import annotations

import logging
from pathlib import Path
import re
import shutil
from typing import Protocol

from ..config import RenderConfig
from ..core.errors import EngineUnavailable, RenderFailure
from ..core.types import (
    AssemblySequence,
    ExportOptions,
    FailedItem,
    MarkdownBatch,
    MarkdownFragment,
    NativeArtifactEntry,
)
from ..tools import ChainExhausted, RenderRequest, ToolError, Toolbox, run_chain
from ..utils.logging import log_event
from .templating import TEMPLATE_DIR, render_template

logger = logging.getLogger("reader_export.assembly")

PAGE_BREAK_MARKUP = '\\clearpage\n\n<div class="pagebreak"></div>'

_MD_IMAGE = re.compile(r"(!\[[^\]]*\]\()([^)\s]+)((?:\s+\"[^\"]*\")?\))")
_HTML_IMAGE = re.compile(r"(<img\b[^>]*?\bsrc\s*=\s*[\"'])([^\"']+)([\"'])", re.IGNORECASE)


class Reporter(Protocol):
    def report(self, message: str) -> None: ...


def fragment_source(fragment: MarkdownFragment) -> str:
    """Fragment markdown with the page-break markup it asked for."""
    if fragment.page_break_before:
        return f"{PAGE_BREAK_MARKUP}\n\n{fragment.markdown}\n"
    return f"{fragment.markdown}\n"


def all_fragments(sequence: AssemblySequence) -> list[MarkdownFragment]:
    fragments: list[MarkdownFragment] = []
    if sequence.title_page is not None:
        fragments.append(sequence.title_page)
    for batch in sequence.markdown_batches():
        fragments.extend(batch.fragments)
    return fragments


class Renderer:
    """Typesets a sequence for one export.

    Args:
        cfg: Render configuration
        toolbox: Discovered external tool adapters
        options: Export options (table of contents, page numbers)
        reporter: Optional progress reporter
    """

    def __init__(
        self,
        cfg: RenderConfig,
        toolbox: Toolbox,
        options: ExportOptions | None = None,
        reporter: Reporter | None = None,
    ):
        self.cfg = cfg
        self.toolbox = toolbox
        self.options = options or ExportOptions()
        self.reporter = reporter

    def _report(self, message: str) -> None:
        if self.reporter is not None:
            self.reporter.report(message)

    # -- markdown ---------------------------------------------------------

    def render_markdown(self, sequence: AssemblySequence, output: Path, workdir: Path) -> Path:
        """Join fragments with blank lines; no page-break markup.

        Media files referenced from the workdir are copied next to the output
        in `{output_stem}_assets/` and the references rewritten.
        """
        self._report("Combining markdown files")
        assets_dir = output.parent / f"{output.stem}_assets"
        parts = [
            _relocate_assets(fragment.markdown.strip(), workdir, assets_dir) for fragment in all_fragments(sequence)
        ]
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text("\n\n".join(part for part in parts if part) + "\n", encoding="utf-8")
        return output

    # -- epub -------------------------------------------------------------

    def render_epub(self, sequence: AssemblySequence, output: Path, workdir: Path, title: str) -> Path:
        typesetter = self.toolbox.epub_typesetter
        if typesetter is None:
            raise EngineUnavailable("EPUB export requires pandoc")

        inputs = self._write_fragments(all_fragments(sequence), workdir, "epub")
        css = workdir / "epub.css"
        shutil.copyfile(TEMPLATE_DIR / "epub.css", css)
        request = RenderRequest(
            inputs=inputs,
            output=output,
            resource_path=workdir,
            metadata_file=self._write_metadata(workdir, "meta-epub.yaml", title=title, show_page_numbers=True),
            toc=self.options.include_toc,
            css=css,
        )
        self._report(f"Rendering EPUB with {typesetter.name}")
        try:
            typesetter.render(request)
        except (ToolError, OSError) as exc:
            raise RenderFailure(f"EPUB render failed: {exc}") from exc
        return output

    # -- pdf --------------------------------------------------------------

    def render_pdf_components(self, sequence: AssemblySequence, workdir: Path) -> list[Path]:
        """Render title page and batches; return PDFs in document order.

        Raises:
            EngineUnavailable: No PDF engine was discovered
            RenderFailure: Every engine failed on a batch
        """
        if not self.toolbox.pdf_typesetters:
            raise EngineUnavailable("No PDF engine detected. Install tectonic or xelatex.")

        components: list[Path] = []
        if sequence.title_page is not None:
            title_pdf = self._render_title_page(sequence, workdir)
            if title_pdf is not None:
                components.append(title_pdf)

        metadata = self._write_metadata(
            workdir, "meta-pdf.yaml", title="", show_page_numbers=self.options.show_page_numbers
        )
        batch_index = 0
        for element in sequence.elements:
            if isinstance(element, NativeArtifactEntry):
                components.append(element.path)
                continue
            components.append(self._render_batch(element, batch_index, workdir, metadata))
            batch_index += 1
        return components

    def _render_title_page(self, sequence: AssemblySequence, workdir: Path) -> Path | None:
        fragment = sequence.title_page
        self._report(f"Generating Title Page: {fragment.title}")
        source = workdir / "titlepage.md"
        source.write_text(fragment.markdown, encoding="utf-8")
        request = RenderRequest(inputs=[source], output=workdir / "titlepage.pdf", resource_path=workdir)
        try:
            _, path = run_chain(self.toolbox.pdf_typesetters, lambda engine: engine.render(request))
        except ChainExhausted as exc:
            logger.warning("Failed to generate title page: %s", exc)
            sequence.failed_items.append(
                FailedItem(
                    item_id=fragment.item_id,
                    title=fragment.title,
                    kind="render_error",
                    reason=f"Title page could not be rendered: {exc.last_error or exc}",
                    fatal=False,
                )
            )
            return None
        return path

    def _render_batch(self, batch: MarkdownBatch, index: int, workdir: Path, metadata: Path) -> Path:
        inputs = self._write_fragments(batch.fragments, workdir, f"batch{index}")
        request = RenderRequest(
            inputs=inputs,
            output=workdir / f"batch-{index}.pdf",
            resource_path=workdir,
            metadata_file=metadata,
            toc=self.options.include_toc and index == 0,
        )
        try:
            engine, path = run_chain(self.toolbox.pdf_typesetters, lambda candidate: candidate.render(request))
        except ChainExhausted as exc:
            raise RenderFailure(f"PDF render failed for batch {index}: {exc.last_error or exc}") from exc
        log_event(logger, "Rendered batch", event="batch_rendered", batch=index, engine=engine.name,
                  fragments=len(batch.fragments))
        self._report(f"Rendered PDF batch {index + 1} with {engine.name}")
        return path

    # -- helpers ----------------------------------------------------------

    def _write_fragments(self, fragments: list[MarkdownFragment], workdir: Path, prefix: str) -> list[Path]:
        paths = []
        for position, fragment in enumerate(fragments):
            path = workdir / f"{prefix}-{position:04d}-{_safe_name(fragment.item_id)}.md"
            path.write_text(fragment_source(fragment), encoding="utf-8")
            paths.append(path)
        return paths

    def _write_metadata(self, workdir: Path, name: str, title: str, show_page_numbers: bool) -> Path:
        path = workdir / name
        path.write_text(
            render_template(
                "meta.yaml.j2",
                lang="en",
                title=title,
                toc_depth=self.cfg.toc_depth,
                show_page_numbers=show_page_numbers,
            ),
            encoding="utf-8",
        )
        return path


def _safe_name(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]", "_", value) or "item"


def _relocate_assets(markdown: str, workdir: Path, assets_dir: Path) -> str:
    def relocate(ref: str) -> str | None:
        if re.match(r"^[a-z][a-z0-9+.-]*:", ref, re.IGNORECASE) or ref.startswith("//"):
            return None
        source = Path(ref)
        if not source.is_absolute():
            source = workdir / source
        try:
            relative = source.resolve().relative_to(workdir.resolve())
        except ValueError:
            return None
        if not source.is_file():
            return None
        # media dirs of different documents repeat file names
        name = "_".join(relative.parts)
        assets_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, assets_dir / name)
        return f"{assets_dir.name}/{name}"

    def md_sub(match: re.Match) -> str:
        new = relocate(match.group(2))
        return match.group(0) if new is None else f"{match.group(1)}{new}{match.group(3)}"

    def html_sub(match: re.Match) -> str:
        new = relocate(match.group(2))
        return match.group(0) if new is None else f"{match.group(1)}{new}{match.group(3)}"

    return _HTML_IMAGE.sub(html_sub, _MD_IMAGE.sub(md_sub, markdown))
