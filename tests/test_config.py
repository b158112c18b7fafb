"""
Tests for YAML configuration loading.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from therapyslots.config import AppConfig


def _write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults():
    config = AppConfig()
    settings = config.to_schedule_settings()

    assert config.monthly_fallback == "weekday"
    assert config.missing_collections == "permissive"
    assert config.snapshot_path is None
    assert settings.default_session_duration == 60
    assert settings.timezone == "America/Sao_Paulo"


def test_load_from_yaml(tmp_path):
    path = _write_config(tmp_path, (
        "snapshot_path: data/snapshot.json\n"
        "timezone: America/Recife\n"
        "schedule:\n"
        "  default_session_duration: 50\n"
        "region:\n"
        "  country_code: BR\n"
        "  state_code: PE\n"
        "monthly_fallback: none\n"
        "missing_collections: strict\n"
    ))

    config = AppConfig.load_from_yaml(path)

    assert config.snapshot_path == tmp_path / "data" / "snapshot.json"
    assert config.region.state_code == "PE"
    assert config.monthly_fallback == "none"
    assert config.missing_collections == "strict"
    assert config.to_schedule_settings().default_session_duration == 50
    assert config.to_schedule_settings().timezone == "America/Recife"


def test_absolute_snapshot_path_kept(tmp_path):
    snapshot = tmp_path / "elsewhere" / "snapshot.json"
    path = _write_config(tmp_path, f"snapshot_path: {snapshot}\n")

    assert AppConfig.load_from_yaml(path).snapshot_path == snapshot


def test_empty_file_uses_defaults(tmp_path):
    config = AppConfig.load_from_yaml(_write_config(tmp_path, ""))

    assert config == AppConfig()


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Config file not found"):
        AppConfig.load_from_yaml(tmp_path / "config.yaml")


def test_invalid_yaml(tmp_path):
    with pytest.raises(ValueError, match="Invalid YAML"):
        AppConfig.load_from_yaml(_write_config(tmp_path, "schedule: [unclosed\n"))


def test_root_must_be_mapping(tmp_path):
    with pytest.raises(ValueError, match="mapping at the root"):
        AppConfig.load_from_yaml(_write_config(tmp_path, "- one\n- two\n"))


@pytest.mark.parametrize("schedule", [
    {"default_session_duration": 0},
    {"default_session_duration": 1441},
    {"break_between_sessions": -1},
])
def test_invalid_schedule(schedule):
    with pytest.raises(ValidationError):
        AppConfig(schedule=schedule)


def test_advance_window_must_cover_minimum():
    with pytest.raises(ValidationError, match="max_advance_days must cover min_advance_hours"):
        AppConfig(schedule={"min_advance_hours": 72, "max_advance_days": 2})


def test_unknown_policy_rejected():
    with pytest.raises(ValidationError):
        AppConfig(missing_collections="lenient")
