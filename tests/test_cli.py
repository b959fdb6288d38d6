"""
Tests for the command-line interface.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from blobtext import __version__
from blobtext.cli import app
from blobtext.config import BlobtextSettings

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    """Default config on disk so user/local config files do not leak in."""
    path = tmp_path / "config.yaml"
    BlobtextSettings().save_to_yaml(path)
    return path


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"Blobtext version {__version__}" in result.stdout


def test_formats(config_file):
    result = runner.invoke(app, ["formats", "--config", str(config_file)])
    assert result.exit_code == 0
    assert "Registered Extractors" in result.stdout
    assert "7 extractors" in result.stdout


def test_extract_plain_text(tmp_path, config_file):
    path = tmp_path / "notes.txt"
    path.write_text("hello from the cli")

    result = runner.invoke(app, ["extract", str(path), "--config", str(config_file)])
    assert result.exit_code == 0
    assert "hello from the cli" in result.stdout
    assert "plain-text" in result.stdout


def test_extract_json_output(tmp_path, config_file):
    path = tmp_path / "doc.md"
    path.write_text("# Title\n\nBody text\n\n## Sub\n\nMore")

    result = runner.invoke(
        app, ["extract", str(path), "--structure", "--json", "--config", str(config_file)]
    )
    assert result.exit_code == 0

    payload = json.loads(result.stdout)
    assert payload["metadata"]["file_type"] == "markdown"
    assert payload["metadata"]["structure"]["headings"] == ["Title", "Sub"]
    assert payload["extraction_info"]["is_complete"] is True


def test_extract_max_length(tmp_path, config_file):
    path = tmp_path / "long.txt"
    path.write_text("abcdefghijklmnop")

    result = runner.invoke(
        app, ["extract", str(path), "--max-length", "4", "--json", "--config", str(config_file)]
    )
    payload = json.loads(result.stdout)
    assert payload["content"] == "abcd..."
    assert payload["metadata"]["truncated"] is True


def test_extract_mime_override(tmp_path, config_file):
    path = tmp_path / "page"
    path.write_text("<p>Hello <b>there</b></p>")

    result = runner.invoke(
        app, ["extract", str(path), "--mime-type", "text/html", "--json", "--config", str(config_file)]
    )
    payload = json.loads(result.stdout)
    assert payload["content"] == "Hello there"


def test_extract_unsupported(tmp_path, config_file):
    path = tmp_path / "blob.bin"
    path.write_bytes(b"\x00\x01\x02")

    result = runner.invoke(app, ["extract", str(path), "--config", str(config_file)])
    assert result.exit_code == 1
    assert "No extractor available" in result.stdout


def test_log_level_option_overrides_config(tmp_path):
    log_file = tmp_path / "blobtext.log"
    path = tmp_path / "config.yaml"
    BlobtextSettings(log_level="DEBUG", log_file=log_file).save_to_yaml(path)
    package_logger = logging.getLogger("blobtext")

    result = runner.invoke(app, ["--log-level", "ERROR", "formats", "--config", str(path)])
    assert result.exit_code == 0
    assert package_logger.level == logging.ERROR
    assert log_file.exists()

    result = runner.invoke(app, ["formats", "--config", str(path)])
    assert result.exit_code == 0
    assert package_logger.level == logging.DEBUG


def test_init_config(tmp_path):
    output = tmp_path / "blobtext.yaml"

    result = runner.invoke(app, ["init-config", "--output", str(output)])
    assert result.exit_code == 0
    assert output.exists()
    assert BlobtextSettings.load_from_yaml(output).extraction.max_file_size == 50 * 1024 * 1024

    declined = runner.invoke(app, ["init-config", "--output", str(output)], input="n\n")
    assert declined.exit_code == 0
    assert "Cancelled" in declined.stdout

    forced = runner.invoke(app, ["init-config", "--output", str(output), "--force"])
    assert forced.exit_code == 0
