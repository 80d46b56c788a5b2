"""
The growing canvas and the page files cut from it.

Why this module exists:
- Source images are stacked top to bottom into one RGBA buffer.
- Completed pages are cropped off the top and written as 01.png, 02.png, ...
- Every append or crop builds a fresh buffer; nothing is edited in place.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Tuple

from PIL import Image

from .manifest import ManifestRecorder
from .utils import StitchIOError


RGBA = Tuple[int, int, int, int]
JPEG_EXTENSIONS = {".jpg", ".jpeg"}


class Canvas:
    """Fixed-width, growing-height RGBA buffer prefilled with a fill color."""

    def __init__(self, width: int, fill: RGBA) -> None:
        self.width = width
        self.fill = fill
        self.image: Optional[Image.Image] = None

    @property
    def height(self) -> int:
        return 0 if self.image is None else self.image.height

    def is_empty(self) -> bool:
        return self.height == 0

    def append(self, source: Image.Image, x_offset: int = 0) -> None:
        """Stack source under the current content at x_offset."""

        old_height = self.height
        new_image = Image.new("RGBA", (self.width, old_height + source.height), self.fill)
        if self.image is not None:
            new_image.paste(self.image, (0, 0))
        layer = source if source.mode == "RGBA" else source.convert("RGBA")
        # Composite instead of paste so transparent source pixels show the fill.
        new_image.alpha_composite(layer, dest=(x_offset, old_height))
        self.image = new_image

    def take(self, cut_height: int) -> Image.Image:
        """Remove rows [0, cut_height) and return them as a page image."""

        if self.image is None or cut_height <= 0:
            raise ValueError("Cannot take a page from an empty canvas.")
        cut_height = min(cut_height, self.height)
        page = self.image.crop((0, 0, self.width, cut_height))
        page.load()

        remaining = self.height - cut_height
        if remaining <= 0:
            self.image = None
        else:
            rest = Image.new("RGBA", (self.width, remaining), self.fill)
            rest.paste(self.image.crop((0, cut_height, self.width, self.height)), (0, 0))
            self.image = rest
        return page

    def take_all(self) -> Image.Image:
        return self.take(self.height)

    def flush_pages(
        self,
        split_height: int,
        find_cut: Callable[[Image.Image, int], int],
        writer: "PageWriter",
    ) -> int:
        """
        Write full pages while the canvas is at least split_height tall.

        find_cut(canvas_image, target_h) returns the chosen page height.
        Returns the number of pages written.
        """

        written = 0
        while self.image is not None and self.height >= split_height:
            cut_height = find_cut(self.image, split_height)
            writer.write(self.take(cut_height))
            written += 1
        return written


class PageWriter:
    """Write pages to out_dir with a zero-padded, increasing counter."""

    def __init__(
        self,
        out_dir: Path,
        extension: str,
        recorder: Optional[ManifestRecorder] = None,
        start: int = 1,
    ) -> None:
        self.out_dir = out_dir
        self.extension = extension
        self.recorder = recorder
        self.counter = start

    def next_path(self) -> Path:
        return self.out_dir / f"{self.counter:02d}{self.extension}"

    def write(self, page: Image.Image, reason: str = "split") -> Path:
        out_path = self.next_path()
        image = page.convert("RGB") if self.extension.lower() in JPEG_EXTENSIONS else page
        try:
            image.save(out_path)
        except (OSError, ValueError, KeyError) as exc:
            raise StitchIOError(f"Failed to write page {out_path}: {exc}") from exc
        self.counter += 1
        if self.recorder is not None:
            self.recorder.add_action(
                action="page_written",
                status="written",
                output=str(out_path),
                height=page.height,
                reason=reason,
            )
        return out_path
