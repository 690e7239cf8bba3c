"""Orchestration pipeline: tokenize -> structure -> (align) -> report."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from core.config.models import AnalyzerSettings
from core.diff.aligner import align_trees, iter_tree_paths
from core.dictionary.models import Dictionary, MessageTypeSchemas
from core.groups.resolver import structure_message
from core.messages.models import (
    Encoding,
    FieldPair,
    GroupNode,
    Node,
    UnifiedEntry,
)
from core.messages.tokenizer import tokenize_with_encoding
from core.orchestrator.models import (
    DiffReport,
    DiffRow,
    DiffSummary,
    DictionarySummary,
    FieldRow,
    ParseReport,
    RowStatus,
)


@dataclass(frozen=True)
class MessageAnalysis:
    """Tokenized and structured form of one raw message."""

    encoding: Encoding
    pairs: tuple[FieldPair, ...]
    msg_type: str | None
    begin_string: str | None
    tree: tuple[Node, ...]
    msg_type_tag: int = 35


@dataclass(frozen=True)
class MessageComparison:
    """Two analyzed messages and their aligned rows."""

    left: MessageAnalysis
    right: MessageAnalysis
    entries: tuple[UnifiedEntry, ...]


def analyze_message(
    raw: str,
    dictionary: Dictionary,
    *,
    settings: AnalyzerSettings | None = None,
) -> MessageAnalysis:
    """Tokenize ``raw`` and rebuild its group tree with ``dictionary``."""

    effective = settings or AnalyzerSettings()
    tokenized = tokenize_with_encoding(raw)
    tree = structure_message(
        tokenized.pairs,
        dictionary,
        msg_type_tag=effective.msg_type_tag,
        max_depth=effective.max_group_depth,
    )
    return MessageAnalysis(
        encoding=tokenized.encoding,
        pairs=tokenized.pairs,
        msg_type=_first_value(tokenized.pairs, effective.msg_type_tag),
        begin_string=_first_value(tokenized.pairs, effective.begin_string_tag),
        tree=tuple(tree),
        msg_type_tag=effective.msg_type_tag,
    )


def compare_messages(
    raw_left: str,
    raw_right: str,
    dictionary: Dictionary,
    *,
    settings: AnalyzerSettings | None = None,
) -> MessageComparison:
    """Analyze both messages and align their trees."""

    left = analyze_message(raw_left, dictionary, settings=settings)
    right = analyze_message(raw_right, dictionary, settings=settings)
    return MessageComparison(
        left=left,
        right=right,
        entries=tuple(align_trees(left.tree, right.tree)),
    )


def build_parse_report(analysis: MessageAnalysis, dictionary: Dictionary) -> ParseReport:
    """Attach names and enum descriptions to an analyzed message."""

    rows: list[FieldRow] = []
    truncated: list[str] = []
    group_count = 0

    for path, depth, node in iter_tree_paths(analysis.tree):
        if isinstance(node, GroupNode):
            group_count += 1
            declared = node.declared_count
            if len(node.instances) < declared:
                truncated.append(path)
            rows.append(
                FieldRow(
                    path=path,
                    tag=node.tag,
                    name=dictionary.tag_name(node.tag),
                    value=node.count_value,
                    depth=depth,
                    is_group_header=True,
                    declared_count=declared,
                    instances_read=len(node.instances),
                )
            )
        else:
            rows.append(
                FieldRow(
                    path=path,
                    tag=node.tag,
                    name=dictionary.tag_name(node.tag),
                    value=node.value,
                    description=dictionary.describe_value(node.tag, node.value),
                    depth=depth,
                )
            )

    msg_type_name = None
    if analysis.msg_type is not None:
        msg_type_name = dictionary.describe_value(analysis.msg_type_tag, analysis.msg_type)

    return ParseReport(
        encoding=analysis.encoding,
        msg_type=analysis.msg_type,
        msg_type_name=msg_type_name,
        begin_string=analysis.begin_string,
        pair_count=len(analysis.pairs),
        group_count=group_count,
        truncated_groups=truncated,
        rows=rows,
    )


def build_diff_report(comparison: MessageComparison, dictionary: Dictionary) -> DiffReport:
    """Build the comparison report; rows keep aligner order."""

    rows = [_diff_row(entry, dictionary) for entry in comparison.entries]
    statuses = [row.status for row in rows]
    matched = statuses.count("match")
    summary = DiffSummary(
        total=len(rows),
        matched_count=matched,
        changed_count=statuses.count("changed"),
        missing_left_count=statuses.count("missing_left"),
        missing_right_count=statuses.count("missing_right"),
        identical=matched == len(rows),
    )
    return DiffReport(
        left=build_parse_report(comparison.left, dictionary),
        right=build_parse_report(comparison.right, dictionary),
        rows=rows,
        summary=summary,
    )


def summarize_dictionary(dictionary: Dictionary) -> DictionarySummary:
    """Describe a compiled dictionary for CLI/API inspection."""

    schemas = dictionary.group_schemas
    fallback = schemas.global_schemas if isinstance(schemas, MessageTypeSchemas) else schemas
    return DictionarySummary(
        tag_count=len(dictionary.tag_names),
        enum_tag_count=len(dictionary.enums),
        message_types=dictionary.message_types(),
        group_schema_count=dictionary.schema_count(),
        group_schemas={
            str(tag): {
                "name": dictionary.tag_name(tag),
                "delimiter": schema.delimiter_tag,
                "fields": sorted(schema.fields),
            }
            for tag, schema in sorted(fallback.items())
        },
    )


def _diff_row(entry: UnifiedEntry, dictionary: Dictionary) -> DiffRow:
    status: RowStatus
    if entry.value_left is None:
        status = "missing_left"
    elif entry.value_right is None:
        status = "missing_right"
    elif entry.is_changed:
        status = "changed"
    else:
        status = "match"

    return DiffRow(
        path=entry.path,
        tag=entry.tag,
        name=dictionary.tag_name(entry.tag),
        depth=entry.depth,
        is_group_header=entry.is_group_header,
        left=entry.value_left,
        right=entry.value_right,
        left_description=_describe(dictionary, entry.tag, entry.value_left),
        right_description=_describe(dictionary, entry.tag, entry.value_right),
        status=status,
    )


def _describe(dictionary: Dictionary, tag: int, value: str | None) -> str | None:
    if value is None:
        return None
    return dictionary.describe_value(tag, value)


def _first_value(pairs: Sequence[FieldPair], tag: int) -> str | None:
    return next((pair.value for pair in pairs if pair.tag == tag), None)
