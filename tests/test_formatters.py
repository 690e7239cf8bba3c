from __future__ import annotations

import json

import pytest

from apps.cli.formatters import format_pairs, parse_output_format
from core.dictionary.defaults import DEFAULT_TAGS
from core.messages.models import FieldPair
from core.messages.tokenizer import tokenize


@pytest.mark.parametrize(
    "raw",
    [
        "8=FIX.4.4|35=D|11=ORDER1|55=MSFT|54=1",
        "8=FIX.4.2\x0135=8\x0158=fill at px=10.5\x0110=123",
        "35=0|112=TEST 1|",
    ],
)
@pytest.mark.parametrize("output_format", ["pipe", "soh"])
def test_pipe_and_soh_output_round_trip(raw: str, output_format: str) -> None:
    pairs = tokenize(raw)

    rendered = format_pairs(pairs, parse_output_format(output_format), DEFAULT_TAGS)

    assert tokenize(rendered) == pairs


@pytest.mark.parametrize(
    "pairs",
    [
        [FieldPair(tag=58, value="hello world")],
        [FieldPair(tag=58, value="a=b")],
        [FieldPair(tag=58, value="px = 10.5 ok")],
    ],
)
@pytest.mark.parametrize("output_format", ["pipe", "soh"])
def test_single_pair_values_with_spaces_and_equals_round_trip(
    pairs: list[FieldPair], output_format: str
) -> None:
    rendered = format_pairs(pairs, parse_output_format(output_format), DEFAULT_TAGS)

    assert tokenize(rendered) == pairs


def test_delimited_output_ends_with_delimiter() -> None:
    pairs = [FieldPair(tag=35, value="D"), FieldPair(tag=55, value="MSFT")]

    assert format_pairs(pairs, "pipe", DEFAULT_TAGS) == "35=D|55=MSFT|"
    assert format_pairs(pairs, "soh", DEFAULT_TAGS) == "35=D\x0155=MSFT\x01"


def test_empty_input_renders_empty_string() -> None:
    for output_format in ("pipe", "soh", "bracketed", "columnar", "json"):
        assert format_pairs([], parse_output_format(output_format), DEFAULT_TAGS) == ""


def test_bracketed_pads_names() -> None:
    pairs = [FieldPair(tag=35, value="D"), FieldPair(tag=9999, value="x")]

    rendered = format_pairs(pairs, "bracketed", DEFAULT_TAGS)

    assert rendered.splitlines() == [
        "<35> MsgType              = D",
        "<9999> 9999                 = x",
    ]
    assert tokenize(rendered) == pairs


def test_columnar_pads_name_and_tag() -> None:
    rendered = format_pairs([FieldPair(tag=55, value="MSFT")], "columnar", DEFAULT_TAGS)

    assert rendered == "Symbol".ljust(30) + "55".ljust(8) + "MSFT"
    assert tokenize(rendered) == [FieldPair(tag=55, value="MSFT")]


def test_json_keeps_last_value_per_tag() -> None:
    pairs = [
        FieldPair(tag=55, value="A"),
        FieldPair(tag=8, value="FIX.4.4"),
        FieldPair(tag=55, value="B"),
    ]

    rendered = format_pairs(pairs, "json", DEFAULT_TAGS)

    payload = json.loads(rendered)
    assert payload == {"8": "FIX.4.4", "55": "B"}
    assert list(payload) == ["8", "55"]
    assert '\n  "8"' in rendered


def test_parse_output_format_normalizes_and_rejects() -> None:
    assert parse_output_format(" PIPE ") == "pipe"
    with pytest.raises(ValueError, match="Unsupported output format"):
        parse_output_format("xml")
