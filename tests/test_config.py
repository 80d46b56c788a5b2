"""
Unit tests for settings validation, YAML config loading and CLI precedence.
"""

from __future__ import annotations

import io
import json
import unittest
from contextlib import redirect_stdout

from helpers import run_cli, solid_image, workspace_temp_dir, write_image

from smart_stitch.cli import _build_effective_config, _build_parser, main
from smart_stitch.config import DEFAULT_STITCH, deep_merge, extract_stitch_section
from smart_stitch.settings import (
    DetectorType,
    FillColor,
    StitchSettings,
    WidthMode,
    parse_choice,
)
from smart_stitch.utils import ConfigurationError, UserError


class StitchSettingsTests(unittest.TestCase):
    def test_defaults_from_default_config(self) -> None:
        settings = StitchSettings.from_mapping({**DEFAULT_STITCH, "input_path": "in"})
        self.assertEqual(settings.split_height, 5000)
        self.assertEqual(settings.width_enforce_type, WidthMode.AUTO_UNIFORM)
        self.assertEqual(settings.detector_type, DetectorType.SMART)
        self.assertEqual(settings.fill_color, FillColor.BLACK)
        self.assertEqual(settings.output_type, ".png")

    def test_codes_and_names_are_accepted(self) -> None:
        self.assertEqual(parse_choice(WidthMode, 4, "w"), WidthMode.MATCH_MAX)
        self.assertEqual(parse_choice(WidthMode, "match-min", "w"), WidthMode.MATCH_MIN)
        self.assertEqual(parse_choice(DetectorType, "1", "d"), DetectorType.DIRECT_SPLIT)
        self.assertEqual(parse_choice(FillColor, "WHITE", "f"), FillColor.WHITE)
        with self.assertRaises(ConfigurationError):
            parse_choice(WidthMode, 9, "w")
        with self.assertRaises(ConfigurationError):
            parse_choice(FillColor, "purple", "f")

    def test_output_type_gets_leading_dot(self) -> None:
        settings = StitchSettings.from_mapping({"input_path": "in", "output_type": "JPG"})
        self.assertEqual(settings.output_type, ".jpg")

    def test_invalid_values_are_rejected(self) -> None:
        bad_values = [
            {"split_height": 0},
            {"split_height": -5},
            {"sensitivity": 101},
            {"scan_step": 0},
            {"ignorable_margin": -1},
            {"width_enforce_type": "custom", "custom_width": 0},
            {"batch_mode": "yes"},
            {"input_path": ""},
        ]
        for overrides in bad_values:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ConfigurationError):
                    StitchSettings.from_mapping({"input_path": "in", **overrides})

    def test_configuration_error_is_user_error(self) -> None:
        with self.assertRaises(UserError):
            StitchSettings(input_path="in", split_height=0)

    def test_to_dict_uses_names(self) -> None:
        data = StitchSettings(input_path="in", fill_color=FillColor.WHITE).to_dict()
        self.assertEqual(data["fill_color"], "white")
        self.assertEqual(data["width_enforce_type"], "auto_uniform")
        json.dumps(data)


class StitchConfigTests(unittest.TestCase):
    def test_deep_merge_nested_overlay_wins(self) -> None:
        merged = deep_merge(
            {"a": 1, "nested": {"x": 1, "y": 2}},
            {"nested": {"y": 20, "z": 30}},
        )
        self.assertEqual(merged, {"a": 1, "nested": {"x": 1, "y": 20, "z": 30}})

    def test_wrapper_form_wins_over_root_keys(self) -> None:
        section = extract_stitch_section(
            {"split_height": 1, "stitch": {"split_height": 3000}}
        )
        self.assertEqual(section, {"split_height": 3000})

    def test_unknown_key_fails(self) -> None:
        with self.assertRaises(UserError):
            extract_stitch_section({"stitch": {"split_hieght": 3000}})

    def test_precedence_defaults_then_yaml_then_explicit_cli(self) -> None:
        with workspace_temp_dir("cfg") as tmpdir:
            path = tmpdir / "cfg.yaml"
            path.write_text(
                "stitch:\n"
                "  split_height: 3000\n"
                "  sensitivity: 50\n"
                "  fill_color: white\n",
                encoding="utf-8",
            )
            args = _build_parser().parse_args(
                ["stitch", "--input", "in", "--config", str(path), "--sensitivity", "70"]
            )
            effective, config_path = _build_effective_config(args)

            self.assertEqual(config_path, path)
            self.assertEqual(effective["sensitivity"], 70)
            self.assertEqual(effective["split_height"], 3000)
            self.assertEqual(effective["fill_color"], "white")
            self.assertEqual(effective["scan_step"], DEFAULT_STITCH["scan_step"])
            self.assertEqual(effective["input_path"], "in")

    def test_post_process_flag_enables_post_processing(self) -> None:
        args = _build_parser().parse_args(
            ["stitch", "--input", "in", "--post_process", "tool", "--post_process_args", "{output}"]
        )
        effective, _ = _build_effective_config(args)
        self.assertTrue(effective["enable_post_process"])
        self.assertEqual(effective["post_process_args"], "{output}")

    def test_dump_default_config(self) -> None:
        stream = io.StringIO()
        with redirect_stdout(stream):
            rc = main(["stitch", "--dump-default-config"])
        self.assertEqual(rc, 0)
        dumped = stream.getvalue()
        self.assertIn("stitch:", dumped)
        self.assertIn("split_height: 5000", dumped)


class CliTests(unittest.TestCase):
    def test_help_is_clean(self) -> None:
        exit_code, stdout_text, stderr_text = run_cli(["--help"])
        self.assertEqual(exit_code, 0)
        self.assertIn("usage:", f"{stdout_text}{stderr_text}".lower())

    def test_missing_input_fails_cleanly(self) -> None:
        exit_code, _, stderr_text = run_cli(["stitch"])
        self.assertEqual(exit_code, 2)
        self.assertIn("requires --input", stderr_text)

    def test_invalid_split_height_fails_cleanly(self) -> None:
        exit_code, _, stderr_text = run_cli(["stitch", "--input", "in", "--split_height", "0"])
        self.assertEqual(exit_code, 2)
        self.assertIn("split_height must be a positive integer.", stderr_text)

    def test_stitch_run_writes_pages_and_manifest(self) -> None:
        with workspace_temp_dir("cli") as root:
            chapter = root / "chapter"
            write_image(chapter / "1.png", solid_image(30, 80))
            write_image(chapter / "2.png", solid_image(30, 80))
            manifest_path = root / "run" / "manifest.json"

            exit_code, stdout_text, _ = run_cli(
                [
                    "--quiet",
                    "stitch",
                    "--input",
                    str(chapter),
                    "--split_height",
                    "100",
                    "--detector",
                    "direct_split",
                    "--manifest",
                    str(manifest_path),
                ]
            )

            out_folder = root / "chapter [Stitched]"
            self.assertEqual(exit_code, 0)
            self.assertIn(str(out_folder), stdout_text)
            self.assertEqual(sorted(p.name for p in out_folder.iterdir()), ["01.png", "02.png"])

            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
            self.assertEqual(manifest["tool"], "smart-stitch")
            self.assertEqual(manifest["summary"]["status"], "ok")
            self.assertEqual(manifest["options"]["detector_type"], "direct_split")
            written = [a for a in manifest["actions"] if a["action"] == "page_written"]
            self.assertEqual([a["height"] for a in written], [100, 60])

    def test_stitch_error_is_reported_in_manifest(self) -> None:
        with workspace_temp_dir("cli") as root:
            manifest_path = root / "manifest.json"
            exit_code, _, stderr_text = run_cli(
                ["stitch", "--input", str(root / "missing"), "--manifest", str(manifest_path)]
            )
            self.assertEqual(exit_code, 2)
            self.assertIn("Error: Input folder not found", stderr_text)
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
            self.assertEqual(manifest["summary"]["status"], "error")


if __name__ == "__main__":
    unittest.main()
