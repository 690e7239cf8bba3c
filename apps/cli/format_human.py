"""Human-readable rendering of parse and diff reports for CLI output."""

from __future__ import annotations

from core.orchestrator.models import DiffReport, DiffRow, FieldRow, ParseReport

_INDENT = "  "
_STATUS_MARKERS = {
    "match": " ",
    "changed": "~",
    "missing_left": "+",
    "missing_right": "-",
}


def render_parse_report(report: ParseReport) -> str:
    """Render one message as an indented tag/name/value listing."""

    lines: list[str] = []
    lines.append("message_summary:")
    lines.append(
        f"encoding={report.encoding} pairs={report.pair_count} groups={report.group_count}"
    )
    msg_type = report.msg_type or "unknown"
    if report.msg_type_name:
        msg_type = f"{msg_type} ({report.msg_type_name})"
    lines.append(f"msg_type={msg_type} begin_string={report.begin_string or 'unknown'}")
    if report.truncated_groups:
        lines.append(f"truncated_groups: {', '.join(report.truncated_groups)}")

    if not report.rows:
        lines.append("no fields recognized")
        return "\n".join(lines)

    for row in report.rows:
        lines.append(_field_line(row))
    return "\n".join(lines)


def render_diff_report(
    report: DiffReport,
    *,
    missing_label: str = "MISSING",
    only_changes: bool = False,
) -> str:
    """Render aligned rows; ``~`` changed, ``+`` right only, ``-`` left only."""

    summary = report.summary
    lines: list[str] = []
    lines.append("diff_summary:")
    lines.append(
        f"rows={summary.total} matched={summary.matched_count} "
        f"changed={summary.changed_count} "
        f"missing_left={summary.missing_left_count} "
        f"missing_right={summary.missing_right_count}"
    )
    lines.append(f"result={'IDENTICAL' if summary.identical else 'DIFFERENT'}")

    for row in report.rows:
        if only_changes and row.status == "match":
            continue
        lines.append(_diff_line(row, missing_label))
    return "\n".join(lines)


def _field_line(row: FieldRow) -> str:
    indent = _INDENT * row.depth
    if row.is_group_header:
        return (
            f"{indent}[{row.tag}] {row.name} (group) "
            f"{row.instances_read}/{row.declared_count} instances"
        )
    return f"{indent}[{row.tag}] {row.name} = {_with_description(row.value, row.description)}"


def _diff_line(row: DiffRow, missing_label: str) -> str:
    marker = _STATUS_MARKERS[row.status]
    indent = _INDENT * row.depth
    left = missing_label if row.left is None else _with_description(row.left, row.left_description)
    right = (
        missing_label if row.right is None else _with_description(row.right, row.right_description)
    )
    label = f"{row.name} (group)" if row.is_group_header else row.name
    return f"{marker} {indent}[{row.tag}] {label}: {left} | {right}"


def _with_description(value: str, description: str | None) -> str:
    if description:
        return f"{value} ({description})"
    return value
