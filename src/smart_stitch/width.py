"""
Width policy: make heterogeneous source images fit one canvas width.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence, Tuple

from PIL import Image

from .decode import probe_width
from .settings import WidthMode


def resolve_target_width(
    mode: WidthMode,
    files: Sequence[Path],
    first_width: int,
    custom_width: int,
) -> int:
    """
    Compute the canvas width for one folder.

    MatchMin/MatchMax read every file header; the first image's width is the
    answer for NoEnforcement and AutoUniform.
    """

    if mode == WidthMode.CUSTOM:
        return custom_width
    if mode in (WidthMode.MATCH_MIN, WidthMode.MATCH_MAX):
        widths = [probe_width(path) for path in files]
        if not widths:
            return first_width
        return min(widths) if mode == WidthMode.MATCH_MIN else max(widths)
    return first_width


def resize_to_width(image: Image.Image, target_width: int) -> Image.Image:
    """Scale image to target_width keeping aspect ratio (height floored)."""

    width, height = image.size
    if width == target_width:
        return image
    new_height = max(1, int(height * target_width / width))
    return image.resize((target_width, new_height), Image.Resampling.LANCZOS)


def center_offset(target_width: int, image_width: int) -> int:
    """Left offset that centers image_width; odd leftovers go to the right."""

    return max(0, (target_width - image_width) // 2)


def normalize_image(
    image: Image.Image, mode: WidthMode, target_width: int
) -> Tuple[Image.Image, int]:
    """
    Return (image, x_offset) ready to be appended to a target_width canvas.

    NoEnforcement leaves the image alone (the canvas follows its width);
    MatchMax centers narrower images instead of stretching them.
    """

    if mode == WidthMode.NO_ENFORCEMENT:
        return image, 0
    if mode == WidthMode.MATCH_MAX:
        if image.width > target_width:
            image = resize_to_width(image, target_width)
        return image, center_offset(target_width, image.width)
    return resize_to_width(image, target_width), 0
