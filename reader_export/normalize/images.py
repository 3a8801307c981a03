"""Image items: copy or download into the workdir and emit an image directive."""

from __future__ import annotations

import logging
from pathlib import Path
import shutil
from urllib.parse import urlparse

from ..core.errors import MissingLocalFile
from ..core.paths import resolve_local_path
from ..core.types import Item, MarkdownFragment
from ..fetch import download_to_file, normalize_url
from ..tools import downscale_image
from .context import NormalizeContext

logger = logging.getLogger("reader_export.normalize")

MIN_WIDTH_PCT = 10
MAX_WIDTH_PCT = 100


def width_percent(value, default: int = 80) -> int:
    """Parse a widthPct option, falling back to default and clamping to [10, 100]."""
    try:
        width = int(float(value)) if value not in (None, "") else default
    except (TypeError, ValueError):
        width = default
    if width == 0:
        width = default
    return min(MAX_WIDTH_PCT, max(MIN_WIDTH_PCT, width))


def _ext_from_url(url: str, fallback: str = ".jpg") -> str:
    suffix = Path(urlparse(url).path).suffix.lower()
    return suffix or fallback


def normalize_image(item: Item, ctx: NormalizeContext) -> MarkdownFragment:
    title = (item.title or "").strip()
    caption = str(item.options.get("caption") or "").strip() or title or "Untitled"
    width = width_percent(item.options.get("widthPct"), ctx.cfg.image.default_width_pct)

    if item.local_path:
        source = resolve_local_path(item.local_path, ctx.cfg.storage.uploads_path)
        if source is None:
            raise MissingLocalFile(f"Missing image: {item.local_path}")
        target = ctx.workdir / f"img-{item.id}{source.suffix.lower() or '.bin'}"
        shutil.copyfile(source, target)
    elif item.source_url:
        url = normalize_url(item.source_url)
        target = ctx.workdir / f"img-{item.id}{_ext_from_url(url)}"
        download_to_file(url, target, ctx.cfg.fetch, ctx.client)
        ctx.attributions.add_image(title, item.source_url)
    else:
        raise MissingLocalFile("Image item has neither a file nor a URL")

    if downscale_image(target, ctx.cfg.image.max_pixels):
        logger.info("Downscaled %s to %dpx", target.name, ctx.cfg.image.max_pixels)

    lines = []
    if title:
        lines.append(f"# {title}")
    lines.append(f"![{caption}]({target.name}){{width={width}%}}")
    return MarkdownFragment(item_id=item.id, title=title or caption, markdown="\n\n".join(lines))
