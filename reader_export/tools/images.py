"""Image tools: SVG rasterization and raster downscaling."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .base import run_command

logger = logging.getLogger("reader_export.tools")


class Rasterizer(ABC):
    """Vector to raster conversion."""

    name = "rasterizer"

    @abstractmethod
    def rasterize(self, svg_path: Path, png_path: Path) -> Path:
        raise NotImplementedError


class ImageMagickRasterizer(Rasterizer):
    """ImageMagick 7 (`magick convert`) or 6 (`convert`)."""

    def __init__(self, binary: str, timeout: float | None = 60.0):
        self.binary = binary
        self.name = Path(binary).name
        self.timeout = timeout

    def rasterize(self, svg_path: Path, png_path: Path) -> Path:
        if self.name == "magick":
            cmd = [self.binary, "convert", svg_path, png_path]
        else:
            cmd = [self.binary, svg_path, png_path]
        run_command(cmd, timeout=self.timeout)
        if not png_path.exists():
            raise FileNotFoundError(f"rasterizer produced no output: {png_path}")
        return png_path


def downscale_image(path: Path, max_pixels: int) -> bool:
    """Shrink a raster image in place so neither side exceeds max_pixels.

    Returns:
        True if the image was resized
    """
    try:
        with Image.open(path) as img:
            if max(img.size) <= max_pixels:
                return False
            fmt = img.format
            img.thumbnail((max_pixels, max_pixels))
            img.save(path, format=fmt)
    except (UnidentifiedImageError, OSError) as exc:
        logger.debug("Skipping downscale for %s: %s", path, exc)
        return False
    return True
