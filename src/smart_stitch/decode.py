"""
Open source images as RGBA Pillow images.

Raster formats go through Pillow. Photoshop documents are flattened with
psd-tools first: every visible layer is composited into one image.
"""

from __future__ import annotations

from pathlib import Path

from PIL import Image
from psd_tools import PSDImage

from .utils import DecodeError


# Webtoon strips are routinely taller than Pillow's decompression-bomb limit.
Image.MAX_IMAGE_PIXELS = None

LAYERED_EXTENSIONS = frozenset({".psd"})


def _is_layered(path: Path) -> bool:
    return path.suffix.lower() in LAYERED_EXTENSIONS


def _load_layered(path: Path) -> Image.Image:
    try:
        psd = PSDImage.open(path)
        flattened = psd.composite()
    except Exception as exc:  # pragma: no cover - psd-tools raises many types
        raise DecodeError(f"Could not read PSD {path}: {exc}") from exc
    if flattened is None:
        raise DecodeError(f"PSD {path} has no visible pixels to flatten.")
    return flattened.convert("RGBA")


def load_image(path: Path) -> Image.Image:
    """Decode path fully into memory as an RGBA image."""

    if _is_layered(path):
        return _load_layered(path)

    try:
        with Image.open(path) as opened:
            opened.load()
            return opened.convert("RGBA")
    except Exception as exc:
        raise DecodeError(f"Failed to read image {path}: {exc}") from exc


def probe_width(path: Path) -> int:
    """
    Read only the header of path and return its pixel width.

    Used for the min/max width policies so every file is not decoded twice.
    """

    try:
        if _is_layered(path):
            return int(PSDImage.open(path).width)
        with Image.open(path) as opened:
            return int(opened.width)
    except Exception as exc:  # pragma: no cover - codec/file errors
        raise DecodeError(f"Failed to read image size of {path}: {exc}") from exc
