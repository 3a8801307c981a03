"""Final PDF assembly from ordered components."""

from __future__ import annotations

import logging
from pathlib import Path
import shutil

from ..core.errors import MergeToolUnavailable, RenderFailure
from ..tools import ChainExhausted, PdfMerger, run_chain

logger = logging.getLogger("reader_export.assembly")


def merge_components(components: list[Path], output: Path, mergers: list[PdfMerger]) -> Path:
    """Concatenate component PDFs into output, preserving their order.

    A single component is copied. Several components go to the first merge
    tool that succeeds, in priority order.

    Raises:
        RenderFailure: No components, or every merge tool failed
        MergeToolUnavailable: Several components but no merge tool
    """
    if not components:
        raise RenderFailure("No PDF components were produced")
    output.parent.mkdir(parents=True, exist_ok=True)
    if len(components) == 1:
        shutil.copyfile(components[0], output)
        return output
    if not mergers:
        raise MergeToolUnavailable(
            "Cannot merge PDFs: no merge tool available (install qpdf, pdfunite or ghostscript)"
        )
    try:
        tool, _ = run_chain(mergers, lambda merger: merger.merge(list(components), output))
    except ChainExhausted as exc:
        raise RenderFailure(f"PDF merge failed: {exc}") from exc
    logger.info("Merged %d PDF components with %s", len(components), tool.name)
    return output
