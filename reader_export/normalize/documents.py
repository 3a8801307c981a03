"""
Uploaded PDF and DOCX items.

For PDF output an uploaded PDF is embedded as-is (a NativeArtifact). For
flowing formats its text is extracted, reflowed and included in the
document; a PDF without a usable text layer keeps a placeholder and is
reported as a non-fatal failure.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..core.errors import ConversionError, MissingLocalFile, NoExtractableText
from ..core.paths import resolve_local_path
from ..core.types import Item, MarkdownFragment, NativeArtifact
from ..tools import ChainExhausted, RenderRequest, ToolError, run_chain
from ..utils.logging import log_event
from .context import NormalizeContext
from .text import clean_extracted_text, has_extractable_text

logger = logging.getLogger("reader_export.normalize")


def _pages_label(count: int | None) -> str:
    if not count:
        return ""
    return f" ({count} page{'' if count == 1 else 's'})"


def resolve_upload(item: Item, ctx: NormalizeContext) -> Path:
    path = resolve_local_path(item.local_path, ctx.cfg.storage.uploads_path)
    if path is None:
        raise MissingLocalFile(f"Missing {item.type.upper()}: {item.local_path or '(no file)'}")
    return path


def extract_pdf_text(pdf_path: Path, ctx: NormalizeContext) -> str | None:
    """Run the text extractor chain and reflow the first usable result."""
    try:
        extractor, raw = run_chain(ctx.toolbox.text_extractors, lambda tool: tool.extract(pdf_path))
    except ChainExhausted as exc:
        logger.debug("No text extracted from %s: %s", pdf_path.name, exc)
        return None
    logger.debug("Extracted text from %s with %s", pdf_path.name, extractor.name)
    return clean_extracted_text(raw)


def normalize_pdf(item: Item, ctx: NormalizeContext) -> NativeArtifact | MarkdownFragment:
    title = (item.title or "").strip() or "Untitled"
    path = resolve_upload(item, ctx)
    pages = ctx.count_pages(path)

    if ctx.is_pdf:
        return NativeArtifact(item_id=item.id, title=title, path=path, page_count=pages)

    heading = f"# {title}{_pages_label(pages)}"
    text = extract_pdf_text(path, ctx)
    if not text or not has_extractable_text(text):
        placeholder = MarkdownFragment(
            item_id=item.id,
            title=title,
            markdown=(
                f"{heading}\n\n*PDF Document: {path.name} - Text extraction not available "
                "(may be scanned/image-based)*"
            ),
            page_count=pages,
        )
        raise NoExtractableText(
            f"No extractable text in {path.name} (may be scanned/image-based)", placeholder=placeholder
        )

    log_event(logger, "Extracted PDF text", event="pdf_text", item_id=item.id, chars=len(text), pages=pages)
    markdown = f"{heading}\n\n*Text extracted from PDF: {path.name}*\n\n{text}\n\n---"
    return MarkdownFragment(item_id=item.id, title=title, markdown=markdown, page_count=pages)


def normalize_docx(item: Item, ctx: NormalizeContext) -> MarkdownFragment:
    title = (item.title or "").strip() or "Untitled"
    path = resolve_upload(item, ctx)
    media_dir = ctx.workdir / f"docx-{item.id}"
    media_dir.mkdir(parents=True, exist_ok=True)

    try:
        _, body = run_chain(ctx.toolbox.docx_converters, lambda tool: tool.convert(path, media_dir))
    except ChainExhausted as exc:
        if not ctx.toolbox.docx_converters:
            raise ConversionError("DOCX conversion requires pandoc") from exc
        raise ConversionError(f"DOCX conversion failed for {path.name}: {exc}") from exc

    pages = count_docx_pages(path, ctx) if ctx.is_pdf else None
    if not body.strip():
        placeholder = MarkdownFragment(
            item_id=item.id,
            title=title,
            markdown=f"# {title}\n\n*DOCX Document: {path.name} - No text content could be extracted*",
            page_count=pages,
        )
        raise NoExtractableText(f"No text content in {path.name}", placeholder=placeholder)
    return MarkdownFragment(item_id=item.id, title=title, markdown=f"# {title}\n\n{body.strip()}", page_count=pages)


def count_docx_pages(docx_path: Path, ctx: NormalizeContext) -> int | None:
    """Typeset a DOCX on its own and count the resulting pages.

    Only an estimate input: any failure returns None.
    """
    if not ctx.toolbox.pdf_typesetters:
        return None
    counted = ctx.workdir / f"pagecount-{docx_path.stem}.pdf"
    request = RenderRequest(inputs=[docx_path], output=counted, resource_path=ctx.workdir)
    try:
        ctx.toolbox.pdf_typesetters[0].render(request)
    except (ToolError, OSError) as exc:
        logger.debug("DOCX page count failed for %s: %s", docx_path.name, exc)
        return None
    try:
        return ctx.count_pages(counted)
    finally:
        counted.unlink(missing_ok=True)

