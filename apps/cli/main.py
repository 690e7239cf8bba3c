"""Typer CLI entrypoint for fixlens."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, cast

import typer
from pydantic import BaseModel

from apps.cli.format_human import render_diff_report, render_parse_report
from apps.cli.formatters import OUTPUT_FORMATS, format_pairs, parse_output_format
from apps.cli.io import read_message, write_report_atomic
from core.config.models import AnalyzerSettings
from core.config.settings_loader import load_settings
from core.dictionary.loader import DictionaryRegistry, load_dictionary, load_dictionary_or_fallback
from core.dictionary.models import Dictionary
from core.messages.tokenizer import tokenize
from core.orchestrator.pipeline import (
    analyze_message,
    build_diff_report,
    build_parse_report,
    compare_messages,
    summarize_dictionary,
)
from core.utils.errors import SchemaParseError

app = typer.Typer(help="FIX message analyzer CLI", rich_markup_mode=None)
ReportMode = Literal["human", "json"]

MessageOption = Annotated[str | None, typer.Option("--message", help="Raw message text.")]
MessageFileOption = Annotated[
    Path | None,
    typer.Option("--message-file", exists=True, dir_okay=False, file_okay=True),
]
DictionaryOption = Annotated[
    Path | None,
    typer.Option("--dictionary", help="QuickFIX-style XML dictionary file."),
]
DictionaryNameOption = Annotated[
    str | None,
    typer.Option("--dictionary-name", help="Configured dictionary name, e.g. FIX44."),
]
SettingsOption = Annotated[
    Path | None,
    typer.Option("--settings", exists=True, dir_okay=False, file_okay=True),
]
ReportOption = Annotated[str, typer.Option("--report", help="human or json.")]
OutOption = Annotated[Path | None, typer.Option("--out", help="Also write the JSON report here.")]


@app.callback()
def cli_callback() -> None:
    """CLI root callback to keep subcommands explicit."""


@app.command("parse")
def parse_command(
    message: MessageOption = None,
    message_file: MessageFileOption = None,
    dictionary: DictionaryOption = None,
    dictionary_name: DictionaryNameOption = None,
    settings: SettingsOption = None,
    report: ReportOption = "human",
    out: OutOption = None,
) -> None:
    """Tokenize one message and print its structured fields."""

    report_mode = _parse_report_mode(report)
    analyzer_settings = _load_settings_or_exit(settings)
    raw = _read_message_or_exit(message, message_file, label="message")
    selected = _select_dictionary(raw, dictionary, dictionary_name, analyzer_settings)

    try:
        analysis = analyze_message(raw, selected, settings=analyzer_settings)
        parse_report = build_parse_report(analysis, selected)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    if report_mode == "json":
        typer.echo(parse_report.model_dump_json(indent=2))
    else:
        typer.echo(render_parse_report(parse_report))
    _write_out(out, parse_report)


@app.command("diff")
def diff_command(
    left: Annotated[str | None, typer.Option("--left", help="Left message text.")] = None,
    left_file: Annotated[
        Path | None, typer.Option("--left-file", exists=True, dir_okay=False, file_okay=True)
    ] = None,
    right: Annotated[str | None, typer.Option("--right", help="Right message text.")] = None,
    right_file: Annotated[
        Path | None, typer.Option("--right-file", exists=True, dir_okay=False, file_okay=True)
    ] = None,
    dictionary: DictionaryOption = None,
    dictionary_name: DictionaryNameOption = None,
    settings: SettingsOption = None,
    report: ReportOption = "human",
    out: OutOption = None,
    only_changes: Annotated[
        bool,
        typer.Option("--only-changes", help="Hide rows whose values match."),
    ] = False,
) -> None:
    """Align two messages field by field and print the differences."""

    report_mode = _parse_report_mode(report)
    analyzer_settings = _load_settings_or_exit(settings)
    raw_left = _read_message_or_exit(left, left_file, label="left")
    raw_right = _read_message_or_exit(right, right_file, label="right")
    selected = _select_dictionary(raw_left, dictionary, dictionary_name, analyzer_settings)

    try:
        comparison = compare_messages(raw_left, raw_right, selected, settings=analyzer_settings)
        diff_report = build_diff_report(comparison, selected)
    except Exception as exc:  # noqa: BLE001
        typer.echo(f"ERROR: {type(exc).__name__}: {exc}")
        raise typer.Exit(code=1) from exc

    if report_mode == "json":
        typer.echo(diff_report.model_dump_json(indent=2))
    else:
        typer.echo(
            render_diff_report(
                diff_report,
                missing_label=analyzer_settings.missing_label,
                only_changes=only_changes,
            )
        )
    _write_out(out, diff_report)


@app.command("convert")
def convert_command(
    to: Annotated[str, typer.Option("--to", help=f"One of: {', '.join(OUTPUT_FORMATS)}.")],
    message: MessageOption = None,
    message_file: MessageFileOption = None,
    dictionary: DictionaryOption = None,
    settings: SettingsOption = None,
) -> None:
    """Re-serialize a message in another text layout."""

    try:
        output_format = parse_output_format(to)
    except ValueError:
        typer.echo(f"ERROR: --to must be one of: {', '.join(OUTPUT_FORMATS)}.")
        raise typer.Exit(code=1) from None

    analyzer_settings = _load_settings_or_exit(settings)
    raw = _read_message_or_exit(message, message_file, label="message")
    selected = _select_dictionary(raw, dictionary, None, analyzer_settings)
    typer.echo(format_pairs(tokenize(raw), output_format, selected.tag_names))


@app.command("dictionary")
def dictionary_command(
    dictionary: Annotated[
        Path,
        typer.Option("--dictionary", exists=True, dir_okay=False, file_okay=True),
    ],
    settings: SettingsOption = None,
) -> None:
    """Compile a dictionary file and print a JSON summary of it."""

    analyzer_settings = _load_settings_or_exit(settings)
    try:
        compiled = load_dictionary(dictionary, max_depth=analyzer_settings.max_schema_depth)
    except SchemaParseError as exc:
        typer.echo(f"ERROR: dictionary schema could not be parsed: {exc}")
        raise typer.Exit(code=2) from exc
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(summarize_dictionary(compiled).model_dump_json(indent=2))


def _parse_report_mode(raw: str) -> ReportMode:
    normalized = raw.lower().strip()
    if normalized not in {"human", "json"}:
        typer.echo("ERROR: --report must be one of: human, json.")
        raise typer.Exit(code=1)
    return cast(ReportMode, normalized)


def _load_settings_or_exit(path: Path | None) -> AnalyzerSettings:
    try:
        return load_settings(path)
    except ValueError as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc


def _read_message_or_exit(text: str | None, path: Path | None, *, label: str) -> str:
    try:
        return read_message(text, path, label=label)
    except (OSError, ValueError) as exc:
        typer.echo(f"ERROR: {exc}")
        raise typer.Exit(code=1) from exc


def _select_dictionary(
    raw: str,
    dictionary_path: Path | None,
    dictionary_name: str | None,
    settings: AnalyzerSettings,
) -> Dictionary:
    if dictionary_path is not None and dictionary_name is not None:
        typer.echo("ERROR: --dictionary and --dictionary-name cannot be used together.")
        raise typer.Exit(code=1)

    registry = DictionaryRegistry(settings)
    if dictionary_path is not None:
        loaded = load_dictionary_or_fallback(
            dictionary_path,
            fallback=registry.default,
            max_depth=settings.max_schema_depth,
        )
        if loaded.fallback_used:
            typer.echo(f"WARNING: using default dictionary; {loaded.error}")
        return loaded.dictionary

    if dictionary_name is not None:
        try:
            return registry.get(dictionary_name)
        except ValueError as exc:
            typer.echo(f"ERROR: {exc}")
            raise typer.Exit(code=1) from exc

    return registry.detect(tokenize(raw))


def _write_out(path: Path | None, report: BaseModel) -> None:
    if path is None:
        return
    try:
        write_report_atomic(path, report.model_dump(mode="json"))
    except OSError as exc:
        typer.echo(f"ERROR: write report failed: {exc}")
        raise typer.Exit(code=1) from exc
    typer.echo(f"INFO: wrote report to {path}")


def main() -> None:
    """Console script entrypoint."""

    app()


if __name__ == "__main__":
    main()
