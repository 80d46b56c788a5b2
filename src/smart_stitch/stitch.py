"""
Stitch one folder of images into re-paginated pages.

Flow per folder: enumerate -> decode -> normalize width -> append to canvas
-> cut full pages at seams -> write the leftover as the last page.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Optional

from PIL import Image

from .canvas import Canvas, PageWriter
from .decode import load_image
from .discovery import collect_image_files
from .events import EventEmitter
from .manifest import ManifestRecorder
from .seams import find_cut_line
from .settings import FillColor, StitchSettings, WidthMode
from .utils import ensure_dir
from .width import normalize_image, resolve_target_width


STITCHED_SUFFIX = " [Stitched]"


def resolve_output_folder(input_folder: Path, settings: StitchSettings) -> Path:
    """
    Decide where pages of input_folder go.

    - no output_path: sibling folder "<name> [Stitched]"
    - output_path, single folder: output_path itself
    - output_path, batch: "<output_path>/<name> [Stitched]"
    """

    stitched_name = f"{input_folder.name}{STITCHED_SUFFIX}"
    if not settings.output_path:
        return input_folder.parent / stitched_name
    output_root = Path(settings.output_path).expanduser()
    if settings.batch_mode:
        return output_root / stitched_name
    return output_root


def _status_prefix(folder_index: int, folder_total: int) -> str:
    if folder_total > 1:
        return f"[Folder {folder_index + 1}/{folder_total}] "
    return ""


def stitch_folder(
    input_folder: Path,
    settings: StitchSettings,
    events: EventEmitter,
    recorder: ManifestRecorder,
    folder_index: int = 0,
    folder_total: int = 1,
) -> Optional[Path]:
    """
    Stitch every image in input_folder and return the output folder.

    Returns None when the folder has no supported images (skipped).
    Raises EnumerationError, DecodeError or StitchIOError on failure.
    """

    files = collect_image_files(input_folder)
    if not files:
        recorder.log(f"No images found in {input_folder}; skipped.", level="warning")
        recorder.add_action(action="folder_skipped", status="skipped", input=str(input_folder))
        return None

    out_folder = resolve_output_folder(input_folder, settings)
    ensure_dir(out_folder)
    recorder.log(f"Stitching {len(files)} image(s) from {input_folder} -> {out_folder}")

    mode = WidthMode(settings.width_enforce_type)
    fill = FillColor(settings.fill_color).rgba
    first_image: Optional[Image.Image] = load_image(files[0])
    target_width = resolve_target_width(
        mode=mode,
        files=files,
        first_width=first_image.width,
        custom_width=settings.custom_width,
    )
    recorder.log(f"Target width {target_width}px (mode={mode.name.lower()}).", level="debug")

    cut = partial(
        find_cut_line,
        start_y=0,
        detector_type=settings.detector_type,
        sensitivity=settings.sensitivity,
        scan_step=settings.scan_step,
        ignorable_margin=settings.ignorable_margin,
    )

    def find_cut(image: Image.Image, target_h: int) -> int:
        cut_height = cut(image, target_h=target_h)
        recorder.log(
            f"Cut at {cut_height}px (target {target_h}px, canvas {image.height}px).",
            level="debug",
        )
        return cut_height

    canvas = Canvas(target_width, fill)
    writer = PageWriter(out_folder, settings.output_type, recorder=recorder)
    prefix = _status_prefix(folder_index, folder_total)
    total_files = len(files)

    for position, path in enumerate(files):
        events.status(f"{prefix}Processing {position + 1}/{total_files}")
        events.progress((folder_index + position / total_files) / folder_total * 100.0)

        if first_image is not None:
            image, first_image = first_image, None
        else:
            image = load_image(path)

        if mode == WidthMode.NO_ENFORCEMENT and image.width != canvas.width:
            if not canvas.is_empty():
                writer.write(canvas.take_all(), reason="width-change")
            canvas = Canvas(image.width, fill)

        image, x_offset = normalize_image(image, mode, canvas.width)
        canvas.append(image, x_offset)
        canvas.flush_pages(settings.split_height, find_cut, writer)

    if not canvas.is_empty():
        writer.write(canvas.take_all(), reason="remainder")

    pages = writer.counter - 1
    recorder.log(f"Wrote {pages} page(s) to {out_folder}")
    recorder.add_action(
        action="folder_done",
        status="written",
        input=str(input_folder),
        output=str(out_folder),
        files=total_files,
        pages=pages,
    )
    return out_folder
