from __future__ import annotations

from core.config.models import AnalyzerSettings
from core.dictionary.compiler import compile_dictionary
from core.dictionary.defaults import DEFAULT_DICTIONARY
from core.orchestrator.pipeline import (
    analyze_message,
    build_diff_report,
    build_parse_report,
    compare_messages,
    summarize_dictionary,
)

ORDER_LEFT = "8=FIX.4.4|35=D|11=ORDER1|55=MSTF|54=1"
ORDER_RIGHT = "8=FIX.4.4|35=D|11=ORDER1|55=MSFT|54=1"

PARTIES_XML = """
<fix>
  <messages>
    <message name="NewOrderSingle" msgtype="D">
      <field name="ClOrdID"/>
      <group name="NoPartyIDs">
        <field name="PartyID"/>
        <field name="PartyIDSource"/>
        <field name="PartyRole"/>
      </group>
    </message>
  </messages>
</fix>
"""


def test_symbol_typo_is_the_only_change() -> None:
    comparison = compare_messages(ORDER_LEFT, ORDER_RIGHT, DEFAULT_DICTIONARY)

    assert len(comparison.entries) == 5
    changed = [entry for entry in comparison.entries if entry.is_changed]
    assert len(changed) == 1
    assert changed[0].tag == 55
    assert (changed[0].value_left, changed[0].value_right) == ("MSTF", "MSFT")
    assert sum(1 for entry in comparison.entries if not entry.is_changed) == 4


def test_diff_report_summary_and_descriptions() -> None:
    comparison = compare_messages(ORDER_LEFT, ORDER_RIGHT, DEFAULT_DICTIONARY)

    report = build_diff_report(comparison, DEFAULT_DICTIONARY)

    assert report.summary.total == 5
    assert report.summary.matched_count == 4
    assert report.summary.changed_count == 1
    assert report.summary.missing_left_count == 0
    assert report.summary.missing_right_count == 0
    assert report.summary.identical is False
    symbol = next(row for row in report.rows if row.tag == 55)
    assert symbol.name == "Symbol"
    assert symbol.status == "changed"
    side = next(row for row in report.rows if row.tag == 54)
    assert side.left_description == "Buy"
    assert side.status == "match"


def test_identical_messages_report_identical() -> None:
    report = build_diff_report(
        compare_messages(ORDER_LEFT, ORDER_LEFT, DEFAULT_DICTIONARY), DEFAULT_DICTIONARY
    )

    assert report.summary.identical is True
    assert report.summary.matched_count == report.summary.total == 5


def test_missing_field_statuses() -> None:
    report = build_diff_report(
        compare_messages("8=FIX.4.4|35=D|55=MSFT", "8=FIX.4.4|35=D|11=X|55=MSFT", DEFAULT_DICTIONARY),
        DEFAULT_DICTIONARY,
    )

    assert [row.status for row in report.rows] == ["match", "match", "missing_left", "match"]
    assert report.summary.missing_left_count == 1


def test_parse_report_with_groups() -> None:
    dictionary = compile_dictionary(PARTIES_XML)
    raw = "8=FIX.4.4|35=D|11=O1|453=2|448=A|447=D|452=3|448=B|447=D|452=1|55=MSFT"

    analysis = analyze_message(raw, dictionary)
    report = build_parse_report(analysis, dictionary)

    assert analysis.encoding == "delimited"
    assert analysis.msg_type == "D"
    assert analysis.begin_string == "FIX.4.4"
    assert report.msg_type_name == "NewOrderSingle"
    assert report.pair_count == 11
    assert report.group_count == 1
    assert report.truncated_groups == []

    header = next(row for row in report.rows if row.path == "453")
    assert header.is_group_header is True
    assert header.declared_count == 2
    assert header.instances_read == 2
    role = next(row for row in report.rows if row.path == "453[1].452")
    assert role.depth == 1
    assert role.name == "PartyRole"
    assert role.description == "ExecutingFirm"


def test_parse_report_flags_truncated_groups() -> None:
    dictionary = compile_dictionary(PARTIES_XML)

    report = build_parse_report(
        analyze_message("35=D|453=2|448=A|447=D|452=3|55=MSFT", dictionary), dictionary
    )

    assert report.truncated_groups == ["453"]


def test_settings_change_message_type_tag() -> None:
    settings = AnalyzerSettings(msg_type_tag=9000)

    analysis = analyze_message("35=D|9000=X", DEFAULT_DICTIONARY, settings=settings)

    assert analysis.msg_type == "X"


def test_empty_message_analysis() -> None:
    report = build_parse_report(analyze_message("", DEFAULT_DICTIONARY), DEFAULT_DICTIONARY)

    assert report.encoding == "empty"
    assert report.rows == []
    assert report.msg_type is None


def test_summarize_dictionary() -> None:
    summary = summarize_dictionary(compile_dictionary(PARTIES_XML))

    assert summary.message_types == ["D"]
    assert summary.group_schema_count == 1
    assert summary.group_schemas["453"] == {
        "name": "NoPartyIDs",
        "delimiter": 448,
        "fields": [447, 448, 452],
    }
