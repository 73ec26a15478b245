from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from .model import RenderedImage


class ImageDecodeError(ValueError):
    """Raster bytes could not be read as an image."""


def read_image_size(data: bytes) -> tuple[int, int]:
    if not data:
        raise ImageDecodeError("empty image data")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            return img.size
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        raise ImageDecodeError(str(exc)) from exc


def decode_png(data: bytes, scale: float = 1.0) -> RenderedImage:
    """Wrap PNG bytes as a RenderedImage sized ``native pixels * scale``."""
    width, height = read_image_size(data)
    if width <= 0 or height <= 0:
        raise ImageDecodeError(f"invalid image size {width}x{height}")
    return RenderedImage(data=data, width=width * scale, height=height * scale)


def fit_width(width: float, height: float, max_width: float, min_width: float) -> tuple[float, float]:
    """Scale down to ``max_width`` or up to ``min_width``, keeping the aspect ratio."""
    if width <= 0 or height <= 0:
        return width, height
    target = width
    if width > max_width:
        target = max_width
    elif width < min_width:
        target = min_width
    ratio = target / width
    return target, height * ratio
