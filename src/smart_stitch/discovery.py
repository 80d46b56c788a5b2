"""
Find the images (and folders of images) a run should process.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from natsort import natsorted

from .utils import EnumerationError


IMAGE_EXTENSIONS = frozenset(
    {".png", ".jpg", ".jpeg", ".webp", ".bmp", ".tiff", ".avif", ".psd"}
)


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS and path.is_file()


def _list_dir(folder: Path) -> List[Path]:
    try:
        return list(folder.iterdir())
    except OSError as exc:
        raise EnumerationError(f"Could not read folder {folder}: {exc}") from exc


def collect_image_files(folder: Path) -> List[Path]:
    """
    Return the supported images directly inside folder, in natural order.

    Natural order compares digit runs as numbers, so "2.png" comes before
    "10.png". Subfolders are not searched.
    """

    files = [path for path in _list_dir(folder) if is_image_file(path)]
    return natsorted(files, key=lambda path: path.name)


def discover_folders(root: Path, batch_mode: bool) -> List[Path]:
    """
    Resolve which folders to stitch.

    - batch off: just root.
    - batch on: every direct subfolder holding at least one image, in natural
      order. A root without such subfolders is processed itself.
    """

    if not root.is_dir():
        raise EnumerationError(f"Input folder not found: {root}")
    if not batch_mode:
        return [root]

    folders = [
        path
        for path in _list_dir(root)
        if path.is_dir() and collect_image_files(path)
    ]
    if not folders:
        return [root]
    return natsorted(folders, key=lambda path: path.name)
