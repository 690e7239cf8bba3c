"""Flatten group trees into path-keyed rows and align two of them.

Paths concatenate ancestor tags and instance indexes, e.g. ``453[0].448``.
Repeated sibling tags outside a recognized group get ``_2``, ``_3`` ...
suffixes in encounter order, so every path in one flattened tree is unique.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from core.messages.models import FlatEntry, GroupNode, Leaf, Node, UnifiedEntry

logger = logging.getLogger("fixlens.diff")


def iter_tree_paths(
    nodes: Sequence[Node], prefix: str = "", depth: int = 0
) -> Iterator[tuple[str, int, Node]]:
    """Yield ``(path, depth, node)`` depth-first, group headers before members."""

    seen: dict[str, int] = {}
    for node in nodes:
        if not isinstance(node, (Leaf, GroupNode)):
            raise TypeError(f"Unsupported node type: {type(node).__name__}")

        path = f"{prefix}{node.tag}"
        occurrences = seen.get(path, 0) + 1
        seen[path] = occurrences
        if occurrences > 1:
            path = f"{path}_{occurrences}"

        yield path, depth, node
        if isinstance(node, GroupNode):
            for index, instance in enumerate(node.instances):
                yield from iter_tree_paths(instance, f"{path}[{index}].", depth + 1)


def flatten_tree(nodes: Sequence[Node]) -> list[FlatEntry]:
    """Flatten a tree; a group yields its header then each instance's rows."""

    flat: list[FlatEntry] = []
    for path, depth, node in iter_tree_paths(nodes):
        if isinstance(node, GroupNode):
            flat.append(
                FlatEntry(
                    path=path,
                    tag=node.tag,
                    value=node.count_value,
                    depth=depth,
                    is_group_header=True,
                )
            )
        else:
            flat.append(FlatEntry(path=path, tag=node.tag, value=node.value, depth=depth))
    return flat


def align_trees(tree_a: Sequence[Node], tree_b: Sequence[Node]) -> list[UnifiedEntry]:
    """Align two structured messages into one ordered, annotated sequence."""

    return align_entries(flatten_tree(tree_a), flatten_tree(tree_b))


def align_entries(left: Sequence[FlatEntry], right: Sequence[FlatEntry]) -> list[UnifiedEntry]:
    """Merge two flattened sequences with a greedy two-cursor walk.

    On a key mismatch, an entry whose key never appears ahead on the other
    side is emitted alone (left first when both are unique). When both keys
    reappear ahead, the cursor that needs the shorter skip to resynchronize
    advances; equal distances advance the left cursor.
    """

    left_by_path = {entry.path: entry for entry in left}
    right_by_path = {entry.path: entry for entry in right}
    left_positions = {entry.path: position for position, entry in enumerate(left)}
    right_positions = {entry.path: position for position, entry in enumerate(right)}

    unified: list[UnifiedEntry] = []
    emitted: set[str] = set()

    def emit(entry: FlatEntry) -> None:
        emitted.add(entry.path)
        left_entry = left_by_path.get(entry.path)
        right_entry = right_by_path.get(entry.path)
        unified.append(
            UnifiedEntry(
                path=entry.path,
                tag=entry.tag,
                depth=entry.depth,
                is_group_header=entry.is_group_header,
                value_left=left_entry.value if left_entry is not None else None,
                value_right=right_entry.value if right_entry is not None else None,
            )
        )

    i = 0
    j = 0
    while i < len(left) or j < len(right):
        if i < len(left) and left[i].path in emitted:
            i += 1
            continue
        if j < len(right) and right[j].path in emitted:
            j += 1
            continue
        if j >= len(right):
            emit(left[i])
            i += 1
            continue
        if i >= len(left):
            emit(right[j])
            j += 1
            continue

        left_key = left[i].path
        right_key = right[j].path
        if left_key == right_key:
            emit(left[i])
            i += 1
            j += 1
            continue

        skip_right = _distance_ahead(right_positions, left_key, j)
        skip_left = _distance_ahead(left_positions, right_key, i)
        if skip_right is None:
            emit(left[i])
            i += 1
        elif skip_left is None:
            emit(right[j])
            j += 1
        elif skip_left <= skip_right:
            emit(left[i])
            i += 1
        else:
            emit(right[j])
            j += 1

    logger.debug(
        "aligned %d left and %d right entries into %d rows",
        len(left),
        len(right),
        len(unified),
    )
    return unified


def _distance_ahead(positions: dict[str, int], path: str, cursor: int) -> int | None:
    position = positions.get(path)
    if position is None or position < cursor:
        return None
    return position - cursor
