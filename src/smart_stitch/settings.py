"""
Run settings for the stitching engine.

Why this module exists:
- The engine takes one fully resolved, immutable settings value per run.
- Raw values (YAML, CLI, a GUI shell) are converted and validated here, so a
  bad configuration is rejected before any folder is touched.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Dict, Mapping, Tuple, Type, TypeVar

from .utils import (
    ConfigurationError,
    validate_int_range,
    validate_positive_int,
)


class WidthMode(IntEnum):
    NO_ENFORCEMENT = 0
    AUTO_UNIFORM = 1
    MATCH_MIN = 2
    CUSTOM = 3
    MATCH_MAX = 4


class DetectorType(IntEnum):
    SMART = 0
    DIRECT_SPLIT = 1


class FillColor(IntEnum):
    BLACK = 0
    WHITE = 1

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        if self is FillColor.WHITE:
            return (255, 255, 255, 255)
        return (0, 0, 0, 255)


_E = TypeVar("_E", bound=IntEnum)


def parse_choice(enum_cls: Type[_E], value: Any, label: str) -> _E:
    """
    Accept an enum member, its integer code, or its snake_case name.

    Example: WidthMode accepts 4, "4", "match_max" and "MATCH_MAX".
    """

    if isinstance(value, enum_cls):
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"{label} must be a number or a name.")
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            value = int(text)
        else:
            key = text.replace("-", "_").upper()
            if key in enum_cls.__members__:
                return enum_cls[key]
            names = ", ".join(name.lower() for name in enum_cls.__members__)
            raise ConfigurationError(f"{label} must be one of: {names}.")
    if isinstance(value, int):
        try:
            return enum_cls(value)
        except ValueError as exc:
            codes = ", ".join(str(int(member)) for member in enum_cls)
            raise ConfigurationError(f"{label} must be one of: {codes}.") from exc
    raise ConfigurationError(f"{label} must be a number or a name.")


def _require_bool(value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigurationError(f"{label} must be true or false.")


def _require_int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{label} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ConfigurationError(f"{label} must be an integer.")


def normalize_output_type(value: str) -> str:
    """Return a lowercase extension with a leading dot (".png")."""

    text = str(value).strip().lower()
    if not text or text == ".":
        raise ConfigurationError("output_type must be a file extension like .png.")
    if not text.startswith("."):
        text = f".{text}"
    return text


@dataclass(frozen=True)
class StitchSettings:
    input_path: str
    output_path: str = ""
    output_type: str = ".png"
    split_height: int = 5000
    width_enforce_type: WidthMode = WidthMode.AUTO_UNIFORM
    custom_width: int = 720
    sensitivity: int = 90
    scan_step: int = 5
    ignorable_margin: int = 5
    batch_mode: bool = False
    detector_type: DetectorType = DetectorType.SMART
    fill_color: FillColor = FillColor.BLACK
    enable_post_process: bool = False
    post_process_path: str = ""
    post_process_args: str = ""

    def __post_init__(self) -> None:
        if not str(self.input_path).strip():
            raise ConfigurationError("input_path is required.")
        validate_positive_int(self.split_height, "split_height")
        validate_int_range(self.sensitivity, 0, 100, "sensitivity")
        validate_positive_int(self.scan_step, "scan_step")
        validate_int_range(self.ignorable_margin, 0, 1 << 30, "ignorable_margin")
        if self.width_enforce_type == WidthMode.CUSTOM:
            validate_positive_int(self.custom_width, "custom_width")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "StitchSettings":
        """Build settings from a merged config dict (YAML/CLI/shell values)."""

        def get(key: str, default: Any) -> Any:
            value = raw.get(key, default)
            return default if value is None else value

        return cls(
            input_path=str(get("input_path", "")),
            output_path=str(get("output_path", "")),
            output_type=normalize_output_type(get("output_type", ".png")),
            split_height=_require_int(get("split_height", 5000), "split_height"),
            width_enforce_type=parse_choice(
                WidthMode, get("width_enforce_type", WidthMode.AUTO_UNIFORM), "width_enforce_type"
            ),
            custom_width=_require_int(get("custom_width", 720), "custom_width"),
            sensitivity=_require_int(get("sensitivity", 90), "sensitivity"),
            scan_step=_require_int(get("scan_step", 5), "scan_step"),
            ignorable_margin=_require_int(get("ignorable_margin", 5), "ignorable_margin"),
            batch_mode=_require_bool(get("batch_mode", False), "batch_mode"),
            detector_type=parse_choice(
                DetectorType, get("detector_type", DetectorType.SMART), "detector_type"
            ),
            fill_color=parse_choice(FillColor, get("fill_color", FillColor.BLACK), "fill_color"),
            enable_post_process=_require_bool(
                get("enable_post_process", False), "enable_post_process"
            ),
            post_process_path=str(get("post_process_path", "")),
            post_process_args=str(get("post_process_args", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view for manifests (enums become lowercase names)."""

        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, IntEnum):
                data[key] = value.name.lower()
        return data
