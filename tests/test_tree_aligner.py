from __future__ import annotations

import pytest

from core.diff.aligner import align_entries, align_trees, flatten_tree
from core.messages.models import FlatEntry, GroupNode, Leaf, Node

TREE: list[Node] = [
    Leaf(8, "FIX.4.4"),
    GroupNode(
        tag=453,
        count_value="2",
        instances=(
            (Leaf(448, "A"), Leaf(447, "D")),
            (Leaf(448, "B"), Leaf(447, "D")),
        ),
    ),
    Leaf(55, "MSFT"),
    Leaf(55, "IBM"),
]


def _leaves(*tags: int) -> list[Node]:
    return [Leaf(tag, f"v{tag}") for tag in tags]


def test_flatten_builds_unique_paths() -> None:
    flat = flatten_tree(TREE)

    assert [entry.path for entry in flat] == [
        "8",
        "453",
        "453[0].448",
        "453[0].447",
        "453[1].448",
        "453[1].447",
        "55",
        "55_2",
    ]
    assert [entry.depth for entry in flat] == [0, 0, 1, 1, 1, 1, 0, 0]
    assert flat[1] == FlatEntry(path="453", tag=453, value="2", depth=0, is_group_header=True)
    assert flat[7].value == "IBM"


def test_flatten_rejects_unknown_node_types() -> None:
    with pytest.raises(TypeError, match="Unsupported node type"):
        flatten_tree([object()])  # type: ignore[list-item]


def test_alignment_identity() -> None:
    unified = align_trees(TREE, TREE)

    assert len(unified) == len(flatten_tree(TREE))
    assert all(entry.value_left is not None for entry in unified)
    assert all(entry.value_left == entry.value_right for entry in unified)
    assert not any(entry.is_missing or entry.is_changed for entry in unified)


def test_alignment_single_insertion() -> None:
    unified = align_trees(_leaves(8, 35, 55), _leaves(8, 35, 11, 55))

    assert [entry.path for entry in unified] == ["8", "35", "11", "55"]
    missing_left = [entry for entry in unified if entry.value_left is None]
    assert len(missing_left) == 1
    assert missing_left[0].tag == 11
    assert missing_left[0].value_right == "v11"


def test_alignment_single_deletion() -> None:
    unified = align_trees(_leaves(8, 35, 11, 55), _leaves(8, 35, 55))

    assert [entry.path for entry in unified] == ["8", "35", "11", "55"]
    assert [entry.path for entry in unified if entry.value_right is None] == ["11"]


def test_alignment_marks_changed_values() -> None:
    unified = align_trees([Leaf(55, "MSTF")], [Leaf(55, "MSFT")])

    assert len(unified) == 1
    assert unified[0].is_changed
    assert not unified[0].is_missing


def test_equal_skip_distances_prefer_left_order() -> None:
    unified = align_trees(_leaves(1, 2), _leaves(2, 1))

    assert [entry.path for entry in unified] == ["1", "2"]
    assert all(entry.value_left == entry.value_right for entry in unified)


def test_each_path_is_emitted_once() -> None:
    unified = align_trees(_leaves(1, 2, 3, 4), _leaves(4, 3, 2, 1))

    paths = [entry.path for entry in unified]
    assert sorted(paths) == ["1", "2", "3", "4"]
    assert len(paths) == len(set(paths))


def test_shorter_right_skip_advances_right_cursor() -> None:
    unified = align_trees(_leaves(1, 2, 3), _leaves(3, 1, 2))

    paths = [entry.path for entry in unified]
    assert paths == ["3", "1", "2"]
    assert len(paths) == len(set(paths))
    assert all(entry.value_left == entry.value_right for entry in unified)


def test_extra_group_instance_shows_as_right_only_rows() -> None:
    one = [GroupNode(tag=453, count_value="1", instances=((Leaf(448, "A"),),))]
    two = [
        GroupNode(
            tag=453,
            count_value="2",
            instances=((Leaf(448, "A"),), (Leaf(448, "B"),)),
        )
    ]

    unified = align_trees(one, two)

    assert [entry.path for entry in unified] == ["453", "453[0].448", "453[1].448"]
    assert unified[0].is_changed
    assert unified[2].value_left is None


def test_align_entries_with_empty_sides() -> None:
    flat = flatten_tree(_leaves(1, 2))

    assert [entry.value_right for entry in align_entries(flat, [])] == [None, None]
    assert [entry.value_left for entry in align_entries([], flat)] == [None, None]
    assert align_entries([], []) == []
