"""Settings loading utilities for the analyzer pipeline."""

from __future__ import annotations

import os
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.config.models import AnalyzerSettings

DICTIONARY_DIR_ENV = "FIXLENS_DICTIONARY_DIR"


def load_settings(path: Path | None = None) -> AnalyzerSettings:
    """Load and validate analyzer settings from YAML."""

    settings_path = path or Path(__file__).with_name("settings.yaml")

    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ValueError(f"Settings file not found: {settings_path}") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in settings file: {settings_path}") from exc

    if not isinstance(raw, dict):
        raise ValueError(f"Settings file must contain a mapping: {settings_path}")

    normalized = _apply_env_overrides(_normalize_dictionary_files(raw, settings_path))

    try:
        return AnalyzerSettings.model_validate(normalized)
    except ValidationError as exc:
        raise ValueError(f"Invalid settings schema: {settings_path}") from exc


def _normalize_dictionary_files(
    raw: dict[object, object], settings_path: Path
) -> dict[object, object]:
    normalized = dict(raw)
    files = normalized.get("dictionary_files")
    if files is None:
        normalized.pop("dictionary_files", None)
        return normalized
    if not isinstance(files, dict):
        raise ValueError(f"dictionary_files must be a mapping in {settings_path}")

    # YAML reads unquoted "FIX.4.4" as a string but "4.4" as a float.
    normalized["dictionary_files"] = {str(key): value for key, value in files.items()}
    return normalized


def _apply_env_overrides(raw: dict[object, object]) -> dict[object, object]:
    override = os.getenv(DICTIONARY_DIR_ENV)
    if override is None or not override.strip():
        return raw
    updated = dict(raw)
    updated["dictionary_dir"] = override.strip()
    return updated
