"""Data models for analyzer settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class AnalyzerSettings(BaseModel):
    """Analyzer settings loaded from YAML."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    msg_type_tag: int = Field(default=35, gt=0)
    begin_string_tag: int = Field(default=8, gt=0)
    max_group_depth: int = Field(default=32, gt=0)
    max_schema_depth: int = Field(default=64, gt=0)
    dictionary_dir: Path | None = None
    dictionary_files: dict[str, str] = Field(default_factory=dict)
    missing_label: str = "MISSING"

    def dictionary_names(self) -> list[str]:
        """Dictionary names (file stems) in BeginString order."""

        return [Path(name).stem for _, name in sorted(self.dictionary_files.items())]
