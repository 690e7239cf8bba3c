"""Data models for compiled field dictionaries and group schemas."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

_EMPTY_SCHEMAS: Mapping[int, GroupSchema] = MappingProxyType({})


@dataclass(frozen=True)
class GroupSchema:
    """Which tags belong to one instance of a repeating group.

    ``delimiter_tag`` starts every instance and is always part of ``fields``.
    """

    delimiter_tag: int
    fields: frozenset[int]

    def __post_init__(self) -> None:
        if self.delimiter_tag not in self.fields:
            raise ValueError(
                f"delimiter tag {self.delimiter_tag} must be one of the group fields"
            )

    @classmethod
    def from_fields(cls, ordered_fields: Iterable[int]) -> GroupSchema:
        """Build a schema whose delimiter is the first declared field."""

        ordered = list(ordered_fields)
        if not ordered:
            raise ValueError("group schema needs at least one field")
        return cls(delimiter_tag=ordered[0], fields=frozenset(ordered))

    def union(self, other: GroupSchema) -> GroupSchema:
        """Merge field sets, keeping this schema's delimiter."""

        return GroupSchema(delimiter_tag=self.delimiter_tag, fields=self.fields | other.fields)


@dataclass(frozen=True)
class MessageTypeSchemas:
    """Group schemas keyed by message type plus a union-of-all fallback."""

    per_message_type: Mapping[str, Mapping[int, GroupSchema]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    global_schemas: Mapping[int, GroupSchema] = field(default_factory=lambda: _EMPTY_SCHEMAS)


GroupSchemaSet = Mapping[int, GroupSchema] | MessageTypeSchemas


@dataclass(frozen=True)
class Dictionary:
    """Read-only lookup tables shared by every parse that uses them."""

    tag_names: Mapping[int, str] = field(default_factory=lambda: MappingProxyType({}))
    enums: Mapping[int, Mapping[str, str]] = field(default_factory=lambda: MappingProxyType({}))
    group_schemas: GroupSchemaSet = field(default_factory=lambda: _EMPTY_SCHEMAS)

    def tag_name(self, tag: int) -> str:
        return self.tag_names.get(tag, str(tag))

    def describe_value(self, tag: int, value: str) -> str | None:
        """Return the enum description for ``value`` or None when unknown."""

        descriptions = self.enums.get(tag)
        if not descriptions:
            return None
        return descriptions.get(value) or None

    def message_types(self) -> list[str]:
        """Return message types that carry their own group schemas."""

        if isinstance(self.group_schemas, MessageTypeSchemas):
            return sorted(self.group_schemas.per_message_type)
        return []

    def schema_count(self) -> int:
        """Number of distinct group count tags known to the fallback schema set."""

        if isinstance(self.group_schemas, MessageTypeSchemas):
            return len(self.group_schemas.global_schemas)
        return len(self.group_schemas)


def freeze_schemas(schemas: Mapping[int, GroupSchema]) -> Mapping[int, GroupSchema]:
    return MappingProxyType(dict(schemas))


def freeze_enums(enums: Mapping[int, Mapping[str, str]]) -> Mapping[int, Mapping[str, str]]:
    return MappingProxyType({tag: MappingProxyType(dict(values)) for tag, values in enums.items()})
