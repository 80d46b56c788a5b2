"""
Command-line interface for smart-stitch.

This file focuses on parsing arguments, resolving the effective settings and
showing job events. The stitching itself runs on a worker thread (batch.py).
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict

from . import __version__
from .config import (
    DEFAULT_STITCH,
    deep_merge,
    dump_default_stitch_yaml,
    extract_stitch_section,
    load_yaml,
)
from .events import PROGRESS, STATUS
from .manifest import ManifestRecorder
from .settings import DetectorType, FillColor, StitchSettings, WidthMode
from .utils import UserError, normalize_path


TOP_LEVEL_EXAMPLES = """Examples:
  python -m smart_stitch stitch --input "raw\\chapter01" --split_height 5000
  python -m smart_stitch stitch --input "raw" --batch --output "out" --width_mode match_max --fill white
  python -m smart_stitch stitch --input "raw\\chapter01" --detector direct_split --output_type .jpg
"""

STITCH_EXAMPLES = """Examples:
  python -m smart_stitch stitch --input "raw\\chapter01" --split_height 5000 --sensitivity 90
  python -m smart_stitch stitch --input "raw" --batch --post_process "waifu2x.exe" --post_process_args "-i {output} -o {output}"
  python -m smart_stitch stitch --dump-default-config
  python -m smart_stitch stitch --input "raw" --config "configs\\stitch.yaml" --manifest "out\\manifest.json"
"""

STITCH_KEYS = set(DEFAULT_STITCH.keys())


def _choice_names(enum_cls: Any) -> list[str]:
    return [name.lower() for name in enum_cls.__members__]


def _build_effective_config(args: argparse.Namespace) -> tuple[Dict[str, Any], Path | None]:
    """Resolve defaults < YAML config < explicit CLI flags."""

    effective = deep_merge(DEFAULT_STITCH, {})
    config_path: Path | None = None
    if hasattr(args, "config"):
        config_path = normalize_path(args.config)
        effective = deep_merge(effective, extract_stitch_section(load_yaml(config_path)))

    raw_args = vars(args)
    cli_overrides = {key: raw_args[key] for key in STITCH_KEYS if key in raw_args}
    if cli_overrides.get("post_process_path"):
        cli_overrides["enable_post_process"] = True

    effective = deep_merge(effective, cli_overrides)
    return effective, config_path


def _verbosity_from_args(args: argparse.Namespace) -> str:
    """Resolve global verbosity mode from top-level flags."""

    if getattr(args, "quiet", False):
        return "quiet"
    if getattr(args, "verbose", False):
        return "verbose"
    return "normal"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-stitch",
        description="Stitch long comic strips and re-split them into pages at clean rows.",
        epilog=TOP_LEVEL_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=__version__)
    verbosity_group = parser.add_mutually_exclusive_group()
    verbosity_group.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress non-error console logs.",
    )
    verbosity_group.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug-level console logs (cut rows, progress).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    stitch = subparsers.add_parser(
        "stitch",
        help="Stitch a folder (or a batch of folders) into pages.",
        epilog=STITCH_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    stitch.add_argument(
        "--input",
        dest="input_path",
        default=argparse.SUPPRESS,
        help="Input folder (required unless set in --config or --dump-default-config).",
    )
    stitch.add_argument(
        "--output",
        dest="output_path",
        default=argparse.SUPPRESS,
        help='Output folder (default: sibling "<input> [Stitched]").',
    )
    stitch.add_argument(
        "--config",
        default=argparse.SUPPRESS,
        help="Optional YAML config for stitch settings.",
    )
    stitch.add_argument(
        "--dump-default-config",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Print default stitch YAML config and exit.",
    )
    stitch.add_argument(
        "--output_type",
        default=argparse.SUPPRESS,
        help="Page file extension, e.g. .png, .jpg, .webp (default: .png).",
    )
    stitch.add_argument(
        "--split_height",
        type=int,
        default=argparse.SUPPRESS,
        help="Target page height in pixels (default: 5000).",
    )
    stitch.add_argument(
        "--width_mode",
        dest="width_enforce_type",
        choices=_choice_names(WidthMode),
        default=argparse.SUPPRESS,
        help="How to reconcile different image widths (default: auto_uniform).",
    )
    stitch.add_argument(
        "--custom_width",
        type=int,
        default=argparse.SUPPRESS,
        help="Page width for --width_mode custom.",
    )
    stitch.add_argument(
        "--sensitivity",
        type=int,
        default=argparse.SUPPRESS,
        help="Seam strictness 0-100; higher needs flatter rows (default: 90).",
    )
    stitch.add_argument(
        "--scan_step",
        type=int,
        default=argparse.SUPPRESS,
        help="Row stride when searching for a seam (default: 5).",
    )
    stitch.add_argument(
        "--ignorable_margin",
        type=int,
        default=argparse.SUPPRESS,
        help="Columns ignored on each side by the seam test (default: 5).",
    )
    stitch.add_argument(
        "--batch",
        dest="batch_mode",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Stitch every subfolder of --input that holds images.",
    )
    stitch.add_argument(
        "--detector",
        dest="detector_type",
        choices=_choice_names(DetectorType),
        default=argparse.SUPPRESS,
        help="smart=search clean rows, direct_split=cut at exact height.",
    )
    stitch.add_argument(
        "--fill",
        dest="fill_color",
        choices=_choice_names(FillColor),
        default=argparse.SUPPRESS,
        help="Padding color for centered images (default: black).",
    )
    stitch.add_argument(
        "--post_process",
        dest="post_process_path",
        default=argparse.SUPPRESS,
        help="Executable to run after each folder (enables post-processing).",
    )
    stitch.add_argument(
        "--post_process_args",
        default=argparse.SUPPRESS,
        help='Argument template; "{output}" becomes the output folder.',
    )
    stitch.add_argument(
        "--manifest",
        default=argparse.SUPPRESS,
        help="Write a JSON manifest of the run to this path.",
    )

    return parser


def _command_string(argv: list[str]) -> str:
    """Reconstruct a command string for the manifest."""

    # list2cmdline produces a Windows-friendly command representation.
    return subprocess.list2cmdline(argv)


def _command_argv_for_manifest(argv: list[str] | None) -> list[str]:
    """Choose argv used to record manifest command faithfully."""

    if argv is None:
        return list(sys.argv)
    return [sys.argv[0], *argv]


def _run_stitch_command(args: argparse.Namespace, argv: list[str] | None) -> int:
    from .batch import StitchJob

    if getattr(args, "dump_default_config", False):
        print(dump_default_stitch_yaml())
        return 0

    effective, config_path = _build_effective_config(args)
    if not effective.get("input_path"):
        raise UserError("stitch requires --input (or input_path in --config).")
    settings = StitchSettings.from_mapping(effective)

    options = settings.to_dict()
    options["version"] = __version__
    if config_path is not None:
        options["config_path"] = str(config_path)
    recorder = ManifestRecorder(
        tool_name="smart-stitch",
        tool_version=__version__,
        command=_command_string(_command_argv_for_manifest(argv)),
        options=options,
        inputs={"input_path": settings.input_path, "batch_mode": settings.batch_mode},
        verbosity=_verbosity_from_args(args),
    )
    manifest_value = effective.get("manifest")
    manifest_path = normalize_path(str(manifest_value)) if manifest_value else None

    summary: Dict[str, Any] = {"status": "error"}
    try:
        job = StitchJob(settings, recorder).start()
        for event in job.events():
            if event.kind == STATUS:
                recorder.log(str(event.value))
            elif event.kind == PROGRESS:
                recorder.log(f"Progress {float(event.value):.0f}%", level="debug")
        result = job.wait()
    except UserError as exc:
        summary["error"] = str(exc)
        raise
    else:
        summary.update(
            status="ok",
            folders=len(result.outputs),
            skipped=len(result.skipped),
            warnings=result.warnings,
            elapsed_s=round(result.elapsed, 3),
        )
        for output in result.outputs:
            print(output)
        return 0
    finally:
        if manifest_path is not None:
            recorder.write_manifest(manifest_path, summary)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "stitch":
            return _run_stitch_command(args, argv)
        raise UserError("Unknown command. Use --help for usage.")
    except UserError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
