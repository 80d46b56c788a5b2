"""
Shared helpers for smart-stitch tests: import path, scratch folders, synthetic
images and an in-process CLI runner.
"""

from __future__ import annotations

import io
import shutil
import sys
from contextlib import contextmanager, redirect_stderr, redirect_stdout
from pathlib import Path
from typing import Iterator, Tuple
from uuid import uuid4

from PIL import Image, ImageDraw


SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


@contextmanager
def workspace_temp_dir(label: str = "test") -> Iterator[Path]:
    root = Path(__file__).resolve().parents[1] / ".tmp_tests"
    root.mkdir(parents=True, exist_ok=True)
    tmp = root / f"{label}_{uuid4().hex}"
    tmp.mkdir(parents=True, exist_ok=False)
    try:
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


def solid_image(
    width: int,
    height: int,
    color: Tuple[int, int, int, int] = (200, 200, 200, 255),
) -> Image.Image:
    return Image.new("RGBA", (width, height), color)


def striped_image(width: int, height: int) -> Image.Image:
    """Alternating black/white columns: no row is flat at any tolerance < 255."""

    image = Image.new("RGBA", (width, height), (255, 255, 255, 255))
    draw = ImageDraw.Draw(image)
    for x in range(0, width, 2):
        draw.line([(x, 0), (x, height - 1)], fill=(0, 0, 0, 255))
    return image


def write_image(path: Path, image: Image.Image) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path)
    return path


def page_sizes(folder: Path) -> list[tuple[str, tuple[int, int]]]:
    """(name, size) of every file in folder, sorted by name."""

    sizes = []
    for path in sorted(folder.iterdir()):
        with Image.open(path) as opened:
            sizes.append((path.name, opened.size))
    return sizes


def _normalize_exit_code(value: object) -> int:
    """Normalize return values/SystemExit payloads into process-style int codes."""

    if value is None:
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return 1


def run_cli(argv: list[str]) -> tuple[int, str, str]:
    """
    Run the smart-stitch CLI in-process with isolated argv and captured stdio.

    Returns: (exit_code, stdout_text, stderr_text)
    """

    from smart_stitch import cli

    original_argv = list(sys.argv)
    stdout_stream = io.StringIO()
    stderr_stream = io.StringIO()

    try:
        sys.argv = ["smart-stitch", *argv]
        with redirect_stdout(stdout_stream), redirect_stderr(stderr_stream):
            try:
                result = cli.main(argv)
            except SystemExit as exc:
                exit_code = _normalize_exit_code(exc.code)
            else:
                exit_code = _normalize_exit_code(result)
    finally:
        sys.argv = original_argv

    return exit_code, stdout_stream.getvalue(), stderr_stream.getvalue()
