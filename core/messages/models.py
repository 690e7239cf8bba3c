"""Data models for tokenized messages, group trees, and alignment rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Encoding = Literal["empty", "bracketed", "columnar", "inline", "delimited"]


@dataclass(frozen=True)
class FieldPair:
    """One tag/value pair in wire order."""

    tag: int
    value: str


@dataclass(frozen=True)
class TokenizeResult:
    """Tokenizer output together with the encoding that was detected."""

    encoding: Encoding
    pairs: tuple[FieldPair, ...]


@dataclass(frozen=True)
class Leaf:
    """A plain field outside of any recognized group count."""

    tag: int
    value: str


@dataclass(frozen=True)
class GroupNode:
    """A repeating group headed by its count field.

    ``instances`` may hold fewer entries than ``count_value`` announces when
    the source message is truncated or does not follow the schema.
    """

    tag: int
    count_value: str
    instances: tuple[tuple[Node, ...], ...] = ()

    @property
    def declared_count(self) -> int:
        return parse_count(self.count_value)


Node = Leaf | GroupNode


@dataclass(frozen=True)
class FlatEntry:
    """Path-keyed row produced by flattening a group tree."""

    path: str
    tag: int
    value: str
    depth: int
    is_group_header: bool = False


@dataclass(frozen=True)
class UnifiedEntry:
    """Aligned row; a side is ``None`` when its message lacks the path."""

    path: str
    tag: int
    depth: int
    is_group_header: bool
    value_left: str | None
    value_right: str | None

    @property
    def is_missing(self) -> bool:
        return self.value_left is None or self.value_right is None

    @property
    def is_changed(self) -> bool:
        return not self.is_missing and self.value_left != self.value_right


def parse_count(value: str) -> int:
    """Interpret a group count value; anything non-numeric counts as zero."""

    try:
        count = int(value.strip())
    except (AttributeError, ValueError):
        return 0
    return count if count > 0 else 0
