"""
Tests for configuration management.
"""

import pytest
from pathlib import Path
from pydantic import ValidationError

from blobtext.config import BlobtextSettings, ExtractionSettings


def test_config_defaults():
    """Test that default configuration loads correctly."""
    config = BlobtextSettings()

    assert config.extraction.max_file_size == 50 * 1024 * 1024
    assert config.extraction.max_length is None
    assert config.extraction.binary_sample_size == 8192
    assert config.extraction.binary_threshold == 0.01
    assert config.extraction.salvage_min_length == 8
    assert config.log_level == "INFO"
    assert config.log_file is None


def test_to_options():
    """Extraction settings become per-call options."""
    settings = ExtractionSettings(max_length=100, extract_structure=True, default_encoding="latin-1")
    options = settings.to_options()

    assert options.max_length == 100
    assert options.extract_structure is True
    assert options.preserve_formatting is False
    assert options.encoding == "latin-1"


def test_invalid_threshold_rejected():
    with pytest.raises(ValidationError):
        ExtractionSettings(binary_threshold=2.0)


def test_env_override(monkeypatch):
    """Nested settings can be set through BLOBTEXT_ variables."""
    monkeypatch.setenv("BLOBTEXT_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("BLOBTEXT_EXTRACTION__MAX_LENGTH", "250")

    config = BlobtextSettings()
    assert config.log_level == "DEBUG"
    assert config.extraction.max_length == 250


def test_yaml_round_trip(tmp_path):
    """Saved config loads back with the same values."""
    config = BlobtextSettings()
    config.extraction.max_length = 500
    config.extraction.preserve_formatting = True

    path = tmp_path / "nested" / "blobtext.yaml"
    config.save_to_yaml(path)
    assert path.exists()

    loaded = BlobtextSettings.load_from_yaml(path)
    assert loaded.extraction.max_length == 500
    assert loaded.extraction.preserve_formatting is True


def test_load_from_missing_yaml(tmp_path):
    with pytest.raises(FileNotFoundError):
        BlobtextSettings.load_from_yaml(tmp_path / "missing.yaml")


def test_load_prefers_local_config(tmp_path, monkeypatch):
    """./blobtext.yaml overrides the user config."""
    home = tmp_path / "home"
    (home / ".config/blobtext").mkdir(parents=True)
    (home / ".config/blobtext/config.yaml").write_text("log_level: WARNING\n")

    project = tmp_path / "project"
    project.mkdir()
    (project / "blobtext.yaml").write_text("extraction:\n  max_length: 42\n")

    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.chdir(project)

    config = BlobtextSettings.load()
    assert config.log_level == "WARNING"
    assert config.extraction.max_length == 42
