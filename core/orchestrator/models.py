"""Report models shared by the CLI and the API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

RowStatus = Literal["match", "changed", "missing_left", "missing_right"]


class FieldRow(BaseModel):
    """One structured field (or group header) of a parsed message."""

    model_config = ConfigDict(extra="forbid")

    path: str
    tag: int
    name: str
    value: str
    description: str | None = None
    depth: int
    is_group_header: bool = False
    declared_count: int | None = None
    instances_read: int | None = None


class ParseReport(BaseModel):
    """Structured view of one message."""

    model_config = ConfigDict(extra="forbid")

    encoding: str
    msg_type: str | None = None
    msg_type_name: str | None = None
    begin_string: str | None = None
    pair_count: int
    group_count: int
    truncated_groups: list[str] = Field(default_factory=list)
    rows: list[FieldRow] = Field(default_factory=list)


class DiffRow(BaseModel):
    """Aligned row of a two-message comparison."""

    model_config = ConfigDict(extra="forbid")

    path: str
    tag: int
    name: str
    depth: int
    is_group_header: bool = False
    left: str | None = None
    right: str | None = None
    left_description: str | None = None
    right_description: str | None = None
    status: RowStatus


class DiffSummary(BaseModel):
    """Aggregate comparison counts.

    Rules:
    - total == matched_count + changed_count + missing_left_count + missing_right_count
    - identical is True when every row matched
    """

    model_config = ConfigDict(extra="forbid")

    total: int
    matched_count: int
    changed_count: int
    missing_left_count: int
    missing_right_count: int
    identical: bool


class DiffReport(BaseModel):
    """Comparison of two messages."""

    model_config = ConfigDict(extra="forbid")

    left: ParseReport
    right: ParseReport
    rows: list[DiffRow] = Field(default_factory=list)
    summary: DiffSummary


class DictionarySummary(BaseModel):
    """Counts describing a compiled dictionary."""

    model_config = ConfigDict(extra="forbid")

    tag_count: int
    enum_tag_count: int
    message_types: list[str] = Field(default_factory=list)
    group_schema_count: int
    group_schemas: dict[str, dict[str, object]] = Field(default_factory=dict)
