"""
Configuration helpers for YAML-backed stitch options.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml

from .utils import UserError


DEFAULT_STITCH: dict[str, Any] = {
    "input_path": "",
    "output_path": "",
    "output_type": ".png",
    "split_height": 5000,
    "width_enforce_type": "auto_uniform",
    "custom_width": 720,
    "sensitivity": 90,
    "scan_step": 5,
    "ignorable_margin": 5,
    "batch_mode": False,
    "detector_type": "smart",
    "fill_color": "black",
    "enable_post_process": False,
    "post_process_path": "",
    "post_process_args": "",
    "manifest": None,
}


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file into a dictionary."""

    if not path.is_file():
        raise UserError(f"Config file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise UserError(f"Failed to parse YAML config {path}: {exc}") from exc
    except OSError as exc:
        raise UserError(f"Failed to read config {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise UserError(f"Config {path} must contain a YAML mapping/object at top level.")
    return loaded


def deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge dictionaries where overlay values win.
    """

    merged = deepcopy(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def validate_keys(cfg: dict[str, Any], allowed: set[str], ctx: str) -> None:
    """
    Validate dictionary keys and fail fast on unknown entries.
    """

    unknown = sorted(key for key in cfg.keys() if key not in allowed)
    if unknown:
        allowed_list = ", ".join(sorted(allowed))
        unknown_list = ", ".join(unknown)
        raise UserError(
            f"Unknown keys in {ctx}: {unknown_list}. Allowed keys: {allowed_list}."
        )


def extract_stitch_section(loaded: dict[str, Any]) -> dict[str, Any]:
    """Support either root config keys or a stitch wrapper."""

    allowed = set(DEFAULT_STITCH.keys())
    if "stitch" in loaded:
        section = loaded["stitch"]
        if not isinstance(section, dict):
            raise UserError("config.stitch must be a mapping/object.")
        validate_keys(section, allowed, "config.stitch")
        return section

    validate_keys(loaded, allowed, "config")
    return loaded


def dump_default_stitch_yaml() -> str:
    """Serialize wrapped stitch defaults as YAML."""

    return yaml.safe_dump({"stitch": DEFAULT_STITCH}, sort_keys=False).rstrip()
