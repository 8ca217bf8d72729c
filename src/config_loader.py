"""Configuration loader with Pydantic validation and defaults.

This module loads config/config.yaml, validates all keys, and provides
a typed Settings object with sane defaults if keys are missing.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


Jurisdiction = Literal["Global", "UAE", "SA", "EU"]


class PathsConfig(BaseSettings):
    """Paths configuration."""

    database: str = "data/case_store.db"
    exports: str = "data/exports"
    logs: str = "logs"


class StoreConfig(BaseSettings):
    """SQLite case store tuning."""

    journal_mode: Literal["WAL", "DELETE", "TRUNCATE"] = "WAL"
    busy_timeout_ms: int = 5000

    @field_validator("busy_timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        """Ensure busy timeout is non-negative."""
        if v < 0:
            raise ValueError("busy_timeout_ms must be >= 0")
        return v


class CaseConfig(BaseSettings):
    """Defaults applied to new evidence and reports."""

    jurisdiction: Jurisdiction = "Global"
    timezone: str = "UTC"


class OCRConfig(BaseSettings):
    """Text extraction / OCR configuration."""

    enabled: bool = True
    min_text_chars: int = 100      # Below this the document is treated as a scan
    language: str = "eng"
    zoom: float = 2.0              # Page render zoom for tesseract

    @field_validator("min_text_chars")
    @classmethod
    def validate_min_chars(cls, v: int) -> int:
        """Ensure threshold is non-negative."""
        if v < 0:
            raise ValueError("min_text_chars must be >= 0")
        return v


class OracleConfig(BaseSettings):
    """Analysis oracle (LLM) configuration."""

    enabled: bool = True
    invocations: int = 3           # Independent calls used for corroboration
    model: str | None = None       # None = provider default from runtime config
    temperature: float = 0.2
    timeout: float = 600.0
    max_text_chars: int = 20000    # Extracted text sent with the prompt

    @field_validator("invocations")
    @classmethod
    def validate_invocations(cls, v: int) -> int:
        """Ensure at least one invocation."""
        if v < 1:
            raise ValueError("invocations must be >= 1")
        return v


class ContradictionConfig(BaseSettings):
    """Contradiction engine configuration."""

    parallel_passes: bool = True
    max_reference_token: int = 10  # Longest exhibit token matched by the omission rule


class Settings(BaseSettings):
    """Main settings class with all configuration sections."""

    model_config = SettingsConfigDict(extra="ignore")

    paths: PathsConfig = Field(default_factory=PathsConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    case: CaseConfig = Field(default_factory=CaseConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    oracle: OracleConfig = Field(default_factory=OracleConfig)
    contradictions: ContradictionConfig = Field(default_factory=ContradictionConfig)

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Settings":
        """Load settings from a YAML file.

        Args:
            config_path: Path to config.yaml file

        Returns:
            Settings instance with loaded configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML is invalid
            ValidationError: If configuration doesn't match schema
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f) or {}

        return cls(**cls._merge_with_defaults(config_dict))

    @classmethod
    def _merge_with_defaults(cls, config_dict: dict) -> dict:
        """Merge config dict with default settings so missing keys keep defaults."""
        defaults = cls().model_dump()

        def deep_merge(base: dict, override: dict) -> dict:
            """Recursively merge override into base."""
            result = base.copy()
            for key, value in override.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                else:
                    result[key] = value
            return result

        return deep_merge(defaults, config_dict)


def get_settings(config_path: str | Path | None = None) -> Settings:
    """Get settings instance, loading from config file or using defaults.

    Args:
        config_path: Optional path to config.yaml. If None, tries config/config.yaml
                     relative to project root, then falls back to defaults.

    Returns:
        Settings instance
    """
    if config_path is None:
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config" / "config.yaml"

    config_path = Path(config_path)
    if config_path.exists():
        return Settings.from_yaml(config_path)

    return Settings()
