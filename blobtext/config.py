"""
Configuration management using Pydantic Settings.

Loads configuration from:
1. ~/.config/blobtext/config.yaml (user config)
2. ./blobtext.yaml (project-local config)
3. Environment variables (override)
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import ExtractionOptions


class ExtractionSettings(BaseModel):
    """Text extraction configuration."""

    max_file_size: int = Field(
        default=50 * 1024 * 1024,
        ge=1,
        description="Largest accepted input in bytes"
    )
    max_length: Optional[int] = Field(default=None, ge=1, description="Default truncation length (chars)")
    preserve_formatting: bool = Field(default=False, description="Default for preserve_formatting")
    extract_structure: bool = Field(default=False, description="Default for extract_structure")
    default_encoding: Optional[str] = Field(
        default=None,
        description="Encoding to assume for text files (None = sniff BOM, else UTF-8)"
    )
    binary_sample_size: int = Field(default=8192, ge=1, description="Bytes sampled for the binary check")
    binary_threshold: float = Field(
        default=0.01,
        ge=0.0,
        le=1.0,
        description="Fraction of control bytes above which content is binary"
    )
    salvage_min_length: int = Field(
        default=8,
        ge=1,
        description="Shortest printable run kept by byte-level salvage"
    )

    def to_options(self) -> ExtractionOptions:
        """Build default per-call options from these settings."""
        return ExtractionOptions(
            preserve_formatting=self.preserve_formatting,
            max_length=self.max_length,
            extract_structure=self.extract_structure,
            encoding=self.default_encoding,
        )


class BlobtextSettings(BaseSettings):
    """Main blobtext configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BLOBTEXT_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Optional log file path")

    @classmethod
    def load_from_yaml(cls, yaml_path: Path) -> "BlobtextSettings":
        """Load configuration from YAML file."""
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            config_dict = yaml.safe_load(f) or {}

        return cls(**config_dict)

    @classmethod
    def load(cls) -> "BlobtextSettings":
        """
        Load configuration with precedence:
        1. Project-local ./blobtext.yaml
        2. User config ~/.config/blobtext/config.yaml
        3. Environment variables
        4. Defaults
        """
        config = cls()

        user_config = Path.home() / ".config/blobtext/config.yaml"
        if user_config.exists():
            config = cls.load_from_yaml(user_config)

        local_config = Path.cwd() / "blobtext.yaml"
        if local_config.exists():
            with open(local_config) as f:
                local_dict = yaml.safe_load(f) or {}
            config = cls(**{**config.model_dump(), **local_dict})

        return config

    def save_to_yaml(self, yaml_path: Path) -> None:
        """Save current configuration to YAML file."""
        yaml_path.parent.mkdir(parents=True, exist_ok=True)
        with open(yaml_path, "w") as f:
            yaml.dump(
                self.model_dump(mode="json", exclude_none=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )


def get_config() -> BlobtextSettings:
    """Convenience function to get current configuration."""
    return BlobtextSettings.load()
