"""Text serializers for tokenized messages ("copy as" formats)."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Literal, cast

from core.messages.models import FieldPair
from core.messages.tokenizer import SOH

OutputFormat = Literal["pipe", "soh", "bracketed", "columnar", "json"]
OUTPUT_FORMATS: tuple[OutputFormat, ...] = ("pipe", "soh", "bracketed", "columnar", "json")


def parse_output_format(raw: str) -> OutputFormat:
    """Normalize a user-supplied format name."""

    normalized = raw.lower().strip()
    if normalized not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format: {raw}")
    return cast(OutputFormat, normalized)


def format_pairs(
    pairs: Sequence[FieldPair],
    output_format: OutputFormat,
    tag_names: Mapping[int, str],
) -> str:
    """Render pairs in ``output_format``; empty input renders as ``""``."""

    if not pairs:
        return ""

    if output_format == "pipe":
        return _delimited(pairs, "|")
    if output_format == "soh":
        return _delimited(pairs, SOH)
    if output_format == "bracketed":
        return "\n".join(
            f"<{pair.tag}> {_name(pair.tag, tag_names):<20} = {pair.value}" for pair in pairs
        )
    if output_format == "columnar":
        return "\n".join(
            f"{_name(pair.tag, tag_names):<30}{str(pair.tag):<8}{pair.value}" for pair in pairs
        )
    if output_format == "json":
        by_tag: dict[int, str] = {}
        for pair in pairs:
            by_tag[pair.tag] = pair.value
        payload = {str(tag): by_tag[tag] for tag in sorted(by_tag)}
        return json.dumps(payload, ensure_ascii=False, indent=2)
    raise ValueError(f"Unsupported output format: {output_format}")


def _delimited(pairs: Sequence[FieldPair], delimiter: str) -> str:
    # Every pair ends with the delimiter, like SOH-terminated FIX fields.
    return "".join(f"{pair.tag}={pair.value}{delimiter}" for pair in pairs)


def _name(tag: int, tag_names: Mapping[int, str]) -> str:
    return tag_names.get(tag, str(tag))
