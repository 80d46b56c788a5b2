"""
Shared utility helpers.

This module keeps the "sharp edges" (errors, validation and parsing) in one
place so the rest of the code can stay focused on image work.
"""

from __future__ import annotations

from pathlib import Path
from typing import List


class UserError(Exception):
    """Raised for user-facing problems that should show a clear message."""


class EnumerationError(UserError):
    """A folder could not be listed."""


class DecodeError(UserError):
    """An image could not be decoded (unsupported, corrupt or unreadable)."""


class StitchIOError(UserError):
    """Writing a page or creating an output folder failed."""


class ConfigurationError(UserError):
    """Settings are invalid and must be rejected before a run starts."""


def normalize_path(value: str) -> Path:
    """
    Convert user input to a Path.

    We do not resolve() here because we want to preserve relative paths in
    manifests and status messages.
    """

    return Path(value).expanduser()


def ensure_dir(path: Path) -> None:
    """Create an output directory (and parents) if needed."""

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StitchIOError(f"Could not create output folder {path}: {exc}") from exc


def validate_positive_int(value: int, label: str) -> int:
    """Common validation for options like split_height or scan_step."""

    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"{label} must be a positive integer.")
    return value


def validate_int_range(value: int, low: int, high: int, label: str) -> int:
    """Validate an integer option that must fall in [low, high]."""

    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{label} must be an integer.")
    if value < low or value > high:
        raise ConfigurationError(f"{label} must be in the range [{low}, {high}].")
    return value


def split_args(args: str) -> List[str]:
    """
    Split a post-process argument template into tokens.

    Whitespace separates tokens; single or double quotes group text that
    contains spaces. Quote characters themselves are dropped, so
    '-o "my dir"' becomes ['-o', 'my dir'].
    """

    tokens: List[str] = []
    current: List[str] = []
    in_quote = False
    for char in args:
        if char in {'"', "'"}:
            in_quote = not in_quote
        elif char in {" ", "\t"} and not in_quote:
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(char)
    if current:
        tokens.append("".join(current))
    return tokens
