"""Tests for CLI configuration handling."""

import argparse
from pathlib import Path
from unittest.mock import patch

import pytest

from policy_migrate.main import load_config, read_config


def make_args(config: str, **overrides: object) -> argparse.Namespace:
    values = {
        "config": config,
        "export_root": None,
        "create_if_missing": False,
        "platform": None,
        "fail_fast": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class TestConfigLoading:
    """Tests for read_config and load_config."""

    def test_explicit_config_missing(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_config(str(tmp_path / "nope.yaml"))

    def test_overrides(self, tmp_path: Path) -> None:
        config_path = tmp_path / "migration.yaml"
        config_path.write_text("export_root: ./from-file\ncontinue_on_error: true\n")

        config = load_config(make_args(
            str(config_path),
            export_root=str(tmp_path / "cli"),
            create_if_missing=True,
            platform="macOS",
            fail_fast=True,
        ))

        assert config.export_root == str(tmp_path / "cli")
        assert config.create_if_missing is True
        assert config.platform == "macOS"
        assert config.continue_on_error is False

    def test_prompts_for_export_root(self, tmp_path: Path) -> None:
        config_path = tmp_path / "migration.yaml"
        config_path.write_text("create_if_missing: false\n")

        with patch("policy_migrate.main.Prompt.ask", return_value="/data/export") as ask:
            config = load_config(make_args(str(config_path)))

        ask.assert_called_once()
        assert config.export_root == "/data/export"
