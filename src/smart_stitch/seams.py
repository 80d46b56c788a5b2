"""
Choose where to cut a canvas into a page.

A cut through a speech bubble or a panel looks bad, so the smart detector
looks for a "clean" row near the wanted page height: a row whose gray level
stays nearly flat from left to right (gutters, blank background).
"""

from __future__ import annotations

from typing import Optional

from PIL import Image

from .settings import DetectorType


UP_SEARCH_FRAC = 0.4
DOWN_SEARCH_FRAC = 0.5


def sensitivity_threshold(sensitivity: int) -> int:
    """Map 0-100 sensitivity to the allowed gray step (100 -> 0, 0 -> 255)."""

    return int(255 * (1 - sensitivity / 100))


def _scan_columns(width: int, margin: int) -> range:
    """Columns that take part in the clean-row test."""

    start_x = margin
    end_x = width - margin
    if margin >= width or start_x >= end_x:
        return range(0, width)
    return range(start_x, end_x)


def is_clean_row(pixels, y: int, columns: range, threshold: int) -> bool:
    """
    True when no two neighbouring scanned pixels on row y differ by more than
    threshold in gray level. pixels is a PixelAccess for an RGB(A) image.
    """

    prev: Optional[int] = None
    for x in columns:
        pixel = pixels[x, y]
        value = (pixel[0] + pixel[1] + pixel[2]) // 3
        if prev is not None and abs(value - prev) > threshold:
            return False
        prev = value
    return True


def find_cut_line(
    canvas: Image.Image,
    start_y: int,
    target_h: int,
    detector_type: DetectorType,
    sensitivity: int,
    scan_step: int,
    ignorable_margin: int,
) -> int:
    """
    Return the page height to cut at, measured from start_y.

    Smart search order: the target row, then upward in scan_step strides up
    to 40% of target_h, then downward up to 50% of target_h. The first clean
    row wins. Without one, the cut is exactly target_h.
    """

    width, height = canvas.size
    cut_y = start_y + target_h
    if cut_y >= height:
        return height - start_y
    if detector_type == DetectorType.DIRECT_SPLIT:
        return target_h

    threshold = sensitivity_threshold(sensitivity)
    columns = _scan_columns(width, ignorable_margin)
    step = max(1, scan_step)
    pixels = canvas.load()

    up_limit = int(target_h * UP_SEARCH_FRAC)
    offset = 0
    while offset <= up_limit:
        scan_y = cut_y - offset
        if scan_y <= start_y:
            break
        if is_clean_row(pixels, scan_y, columns, threshold):
            return scan_y - start_y
        offset += step

    down_limit = target_h // 2
    offset = step
    while offset <= down_limit:
        scan_y = cut_y + offset
        if scan_y >= height:
            break
        if is_clean_row(pixels, scan_y, columns, threshold):
            return scan_y - start_y
        offset += step

    return target_h
