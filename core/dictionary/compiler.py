"""Compile QuickFIX-style XML dictionaries into lookup tables and group schemas.

Only the element vocabulary below is interpreted; anything else is ignored:

- ``field`` (``number``, ``name``) with ``value`` children (``enum``, ``description``)
- ``components`` container of named ``component`` definitions
- ``messages`` container of ``message`` blocks keyed by ``msgtype``
- ``group`` / ``component`` references inside message, component or group bodies
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from lxml import etree

from core.dictionary.defaults import DEFAULT_DICTIONARY
from core.dictionary.models import (
    Dictionary,
    GroupSchema,
    GroupSchemaSet,
    MessageTypeSchemas,
    freeze_enums,
    freeze_schemas,
)
from core.utils.errors import SchemaParseError

logger = logging.getLogger("fixlens.dictionary")

DEFAULT_MAX_SCHEMA_DEPTH = 64

_XML_DECLARATION_RE = re.compile(r"\A\ufeff?<\?xml\b[^>]*\?>")


@dataclass(frozen=True)
class _ResolveContext:
    """Lookup state shared (read-only) by every resolution branch."""

    name_to_id: Mapping[str, int]
    components: Mapping[str, etree._Element]
    max_depth: int


@dataclass
class _Resolution:
    fields: list[int] = field(default_factory=list)
    groups: dict[int, GroupSchema] = field(default_factory=dict)


def compile_dictionary(
    source: str | bytes,
    *,
    base: Dictionary = DEFAULT_DICTIONARY,
    max_depth: int = DEFAULT_MAX_SCHEMA_DEPTH,
    source_name: str | None = None,
) -> Dictionary:
    """Build a read-only Dictionary from schema markup.

    Entries found in ``source`` are added on top of ``base``; nothing from
    ``base`` is removed and ``base`` itself is left untouched.

    Raises:
        SchemaParseError: ``source`` is empty or not well-formed XML.
    """

    root = _parse_xml(source, source_name)

    tag_names, enums, name_to_id = _collect_fields(root, base)
    context = _ResolveContext(
        name_to_id=MappingProxyType(name_to_id),
        components=MappingProxyType(_index_components(root)),
        max_depth=max_depth,
    )

    per_message_type: dict[str, Mapping[int, GroupSchema]] = {}
    global_schemas: dict[int, GroupSchema] = {}

    messages_root = _first_named(root, "messages")
    if messages_root is not None:
        for message in _element_children(messages_root):
            if _local_name(message) != "message":
                continue
            msg_type = message.get("msgtype")
            if not msg_type:
                logger.debug("skipping message %r without msgtype", message.get("name"))
                continue
            resolution = _resolve(message, context, frozenset(), 0)
            per_message_type[msg_type] = freeze_schemas(resolution.groups)
            _fold_schemas(global_schemas, resolution.groups)

    if not per_message_type:
        logger.debug("no message structures declared; scanning every group definition")
        for group in _iter_named(root, "group"):
            tag = _resolve_tag(group, context)
            if tag is None:
                continue
            resolution = _resolve(group, context, frozenset(), 0)
            if resolution.fields:
                _fold_schemas(global_schemas, {tag: GroupSchema.from_fields(resolution.fields)})
            _fold_schemas(global_schemas, resolution.groups)

    dictionary = Dictionary(
        tag_names=MappingProxyType(tag_names),
        enums=freeze_enums(enums),
        group_schemas=_merge_group_schemas(base.group_schemas, per_message_type, global_schemas),
    )
    logger.info(
        "compiled dictionary%s: tags=%d message_types=%d group_schemas=%d",
        f" {source_name}" if source_name else "",
        len(tag_names),
        len(per_message_type),
        len(global_schemas),
    )
    return dictionary


def _parse_xml(source: str | bytes, source_name: str | None) -> etree._Element:
    if isinstance(source, str):
        # Text is already decoded; a declared encoding no longer applies.
        data = _XML_DECLARATION_RE.sub("", source, count=1).encode("utf-8")
    elif isinstance(source, bytes):
        data = source
    else:
        raise SchemaParseError("Schema source must be text", source_name=source_name)

    if not data.strip():
        raise SchemaParseError("Schema source is empty", source_name=source_name)

    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )
    try:
        return etree.fromstring(data, parser)
    except etree.XMLSyntaxError as exc:
        line = getattr(exc, "lineno", None)
        raise SchemaParseError(
            f"Invalid dictionary XML: {exc.msg}",
            line=line,
            source_name=source_name,
        ) from exc


def _collect_fields(
    root: etree._Element,
    base: Dictionary,
) -> tuple[dict[int, str], dict[int, dict[str, str]], dict[str, int]]:
    tag_names = dict(base.tag_names)
    enums = {tag: dict(values) for tag, values in base.enums.items()}
    name_to_id = {name: tag for tag, name in base.tag_names.items()}

    for definition in _iter_named(root, "field"):
        number = _parse_tag(definition.get("number"))
        name = definition.get("name")
        if number is None or not name:
            continue
        tag_names[number] = name
        name_to_id[name] = number

        for value in _iter_named(definition, "value"):
            enum = value.get("enum")
            if enum:
                enums.setdefault(number, {})[enum] = value.get("description") or ""

    return tag_names, enums, name_to_id


def _index_components(root: etree._Element) -> dict[str, etree._Element]:
    components_root = _first_named(root, "components")
    if components_root is None:
        return {}

    components: dict[str, etree._Element] = {}
    for child in _element_children(components_root):
        name = child.get("name")
        if _local_name(child) == "component" and name:
            components[name] = child
    return components


def _resolve(
    node: etree._Element,
    context: _ResolveContext,
    visiting: frozenset[str],
    depth: int,
) -> _Resolution:
    """Resolve the field list and group schemas declared under ``node``.

    ``visiting`` holds the component names expanded on the current branch
    only; siblings get their own copy so diamond-shaped reuse is not mistaken
    for a cycle.
    """

    resolution = _Resolution()
    if depth > context.max_depth:
        logger.warning(
            "schema nesting exceeds %d levels at <%s name=%r>; ignoring deeper content",
            context.max_depth,
            _local_name(node),
            node.get("name"),
        )
        return resolution

    for child in _element_children(node):
        kind = _local_name(child)
        name = child.get("name")

        if kind == "field":
            tag = _resolve_tag(child, context)
            if tag is None:
                logger.debug("field %r has no number and no known name", name)
                continue
            resolution.fields.append(tag)

        elif kind == "group":
            tag = _resolve_tag(child, context)
            if tag is None:
                logger.warning("group %r has no number and no known name; skipped", name)
                continue
            resolution.fields.append(tag)
            nested = _resolve(child, context, visiting, depth + 1)
            if nested.fields:
                resolution.groups[tag] = GroupSchema.from_fields(nested.fields)
            else:
                logger.debug("group %d declares no resolvable fields", tag)
            resolution.groups.update(nested.groups)

        elif kind == "component":
            definition = context.components.get(name) if name else None
            if definition is None:
                logger.warning("component %r referenced but not defined", name)
                continue
            if name in visiting:
                logger.warning("component %r references itself; expansion stopped", name)
                continue
            spliced = _resolve(definition, context, visiting | {name}, depth + 1)
            resolution.fields.extend(spliced.fields)
            resolution.groups.update(spliced.groups)

    return resolution


def _resolve_tag(element: etree._Element, context: _ResolveContext) -> int | None:
    number = _parse_tag(element.get("number"))
    if number is not None:
        return number
    name = element.get("name")
    if name:
        return context.name_to_id.get(name)
    return None


def _fold_schemas(target: dict[int, GroupSchema], schemas: Mapping[int, GroupSchema]) -> None:
    for tag, schema in schemas.items():
        existing = target.get(tag)
        target[tag] = schema if existing is None else existing.union(schema)


def _merge_group_schemas(
    base: GroupSchemaSet,
    per_message_type: Mapping[str, Mapping[int, GroupSchema]],
    global_schemas: Mapping[int, GroupSchema],
) -> MessageTypeSchemas:
    if isinstance(base, MessageTypeSchemas):
        base_per_type = dict(base.per_message_type)
        base_global = dict(base.global_schemas)
    else:
        base_per_type = {}
        base_global = dict(base)

    base_per_type.update(per_message_type)
    base_global.update(global_schemas)
    return MessageTypeSchemas(
        per_message_type=MappingProxyType(base_per_type),
        global_schemas=freeze_schemas(base_global),
    )


def _parse_tag(raw: str | None) -> int | None:
    if raw is None:
        return None
    text = raw.strip()
    if not text.isascii() or not text.isdigit():
        return None
    tag = int(text)
    return tag if tag > 0 else None


def _local_name(element: etree._Element) -> str:
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def _element_children(element: etree._Element) -> Iterator[etree._Element]:
    for child in element:
        if isinstance(child.tag, str):
            yield child


def _iter_named(root: etree._Element, name: str) -> Iterator[etree._Element]:
    for element in root.iter():
        if _local_name(element) == name:
            yield element


def _first_named(root: etree._Element, name: str) -> etree._Element | None:
    return next(_iter_named(root, name), None)
