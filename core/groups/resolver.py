"""Rebuild repeating-group trees from flat tag/value sequences.

Structuring is lenient: a group instance must open with the schema's
delimiter tag, and the first mismatch ends the group even when fewer
instances than announced were read. Leftover pairs are structured again at
the parent level, so corrupt input still yields a partial tree.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from core.dictionary.models import Dictionary, GroupSchema, GroupSchemaSet, MessageTypeSchemas
from core.messages.models import FieldPair, GroupNode, Leaf, Node, parse_count

logger = logging.getLogger("fixlens.groups")

DEFAULT_MSG_TYPE_TAG = 35
DEFAULT_MAX_GROUP_DEPTH = 32


def select_group_schemas(
    pairs: Sequence[FieldPair],
    group_schemas: GroupSchemaSet,
    *,
    msg_type_tag: int = DEFAULT_MSG_TYPE_TAG,
) -> Mapping[int, GroupSchema]:
    """Pick the schema map for the message type found in ``pairs``.

    Falls back to the global union when the type is absent or unknown; a
    flat schema map is returned as-is.
    """

    if not isinstance(group_schemas, MessageTypeSchemas):
        return group_schemas

    msg_type = next((pair.value for pair in pairs if pair.tag == msg_type_tag), None)
    if msg_type is not None:
        schemas = group_schemas.per_message_type.get(msg_type)
        if schemas is not None:
            logger.debug("using group schemas for message type %r", msg_type)
            return schemas
    return group_schemas.global_schemas


def structure_message(
    pairs: Sequence[FieldPair],
    dictionary: Dictionary,
    *,
    msg_type_tag: int = DEFAULT_MSG_TYPE_TAG,
    max_depth: int = DEFAULT_MAX_GROUP_DEPTH,
) -> list[Node]:
    """Structure ``pairs`` with the dictionary schema for their message type."""

    schemas = select_group_schemas(pairs, dictionary.group_schemas, msg_type_tag=msg_type_tag)
    return structure_pairs(pairs, schemas, max_depth=max_depth)


def structure_pairs(
    pairs: Sequence[FieldPair],
    schemas: Mapping[int, GroupSchema],
    *,
    max_depth: int = DEFAULT_MAX_GROUP_DEPTH,
) -> list[Node]:
    """Turn a flat pair sequence into Leaf/GroupNode values in source order."""

    return _structure(pairs, schemas, max_depth, 0)


def _structure(
    pairs: Sequence[FieldPair],
    schemas: Mapping[int, GroupSchema],
    max_depth: int,
    depth: int,
) -> list[Node]:
    nodes: list[Node] = []
    total = len(pairs)
    index = 0

    if depth > max_depth and pairs:
        logger.warning(
            "group nesting exceeds %d levels; keeping %d pairs as plain fields",
            max_depth,
            total,
        )
        return [Leaf(tag=pair.tag, value=pair.value) for pair in pairs]

    while index < total:
        pair = pairs[index]
        schema = schemas.get(pair.tag)
        index += 1
        if schema is None:
            nodes.append(Leaf(tag=pair.tag, value=pair.value))
            continue

        count = parse_count(pair.value)
        instances: list[tuple[Node, ...]] = []
        while index < total and len(instances) < count:
            if pairs[index].tag != schema.delimiter_tag:
                logger.debug(
                    "group %d: expected delimiter %d, found %d",
                    pair.tag,
                    schema.delimiter_tag,
                    pairs[index].tag,
                )
                break
            end = _instance_end(pairs, index, schema, schemas, max_depth, depth)
            children = _structure(pairs[index:end], schemas, max_depth, depth + 1)
            instances.append(tuple(children))
            index = end

        if len(instances) < count:
            logger.debug(
                "group %d announced %d instances, read %d",
                pair.tag,
                count,
                len(instances),
            )
        nodes.append(GroupNode(tag=pair.tag, count_value=pair.value, instances=tuple(instances)))

    return nodes


def _instance_end(
    pairs: Sequence[FieldPair],
    start: int,
    schema: GroupSchema,
    schemas: Mapping[int, GroupSchema],
    max_depth: int,
    depth: int,
) -> int:
    """Return the index just past the instance that opens at ``start``.

    A member tag that is itself a group count swallows its whole nested run
    so nested instances never straddle an instance boundary here. The
    delimiter counts too: a group may open with a nested group.
    """

    total = len(pairs)
    index = start + 1
    opening = schemas.get(pairs[start].tag)
    if opening is not None:
        index = _skip_group(pairs, index, opening, schemas, max_depth, depth + 1)
    while index < total:
        tag = pairs[index].tag
        if tag == schema.delimiter_tag or tag not in schema.fields:
            break
        index += 1
        nested = schemas.get(tag)
        if nested is not None:
            index = _skip_group(pairs, index, nested, schemas, max_depth, depth + 1)
    return index


def _skip_group(
    pairs: Sequence[FieldPair],
    start: int,
    schema: GroupSchema,
    schemas: Mapping[int, GroupSchema],
    max_depth: int,
    depth: int,
) -> int:
    if depth > max_depth:
        return start

    count = parse_count(pairs[start - 1].value)
    total = len(pairs)
    index = start
    consumed = 0
    while index < total and consumed < count:
        if pairs[index].tag != schema.delimiter_tag:
            break
        index = _instance_end(pairs, index, schema, schemas, max_depth, depth)
        consumed += 1
    return index
