from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from apps.cli.main import app

runner = CliRunner()

ORDER = "8=FIX.4.4|35=D|11=ORDER1|55=MSFT|54=1"
PARTIES_XML = """
<fix>
  <messages>
    <message name="NewOrderSingle" msgtype="D">
      <group name="NoPartyIDs"><field name="PartyID"/><field name="PartyRole"/></group>
    </message>
  </messages>
</fix>
"""


def test_parse_human_report() -> None:
    result = runner.invoke(app, ["parse", "--message", ORDER])

    assert result.exit_code == 0
    assert "encoding=delimited pairs=5 groups=0" in result.output
    assert "msg_type=D (NewOrderSingle) begin_string=FIX.4.4" in result.output
    assert "[55] Symbol = MSFT" in result.output
    assert "[54] Side = 1 (Buy)" in result.output


def test_parse_json_report() -> None:
    result = runner.invoke(app, ["parse", "--message", ORDER, "--report", "json"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["pair_count"] == 5
    assert [row["tag"] for row in payload["rows"]] == [8, 35, 11, 55, 54]


def test_parse_message_file_with_dictionary(tmp_path: Path) -> None:
    message_file = tmp_path / "order.txt"
    message_file.write_text("35=D|453=1|448=A|452=3|55=MSFT", encoding="utf-8")
    dictionary = tmp_path / "dict.xml"
    dictionary.write_text(PARTIES_XML, encoding="utf-8")

    result = runner.invoke(
        app,
        ["parse", "--message-file", str(message_file), "--dictionary", str(dictionary)],
    )

    assert result.exit_code == 0
    assert "[453] NoPartyIDs (group) 1/1 instances" in result.output
    assert "  [452] PartyRole = 3 (ClientId)" in result.output


def test_parse_malformed_dictionary_falls_back(tmp_path: Path) -> None:
    dictionary = tmp_path / "broken.xml"
    dictionary.write_text("<fix><fields>", encoding="utf-8")

    result = runner.invoke(app, ["parse", "--message", ORDER, "--dictionary", str(dictionary)])

    assert result.exit_code == 0
    assert "WARNING: using default dictionary" in result.output
    assert "[55] Symbol = MSFT" in result.output


def test_parse_writes_json_report(tmp_path: Path) -> None:
    out = tmp_path / "reports" / "parse.json"

    result = runner.invoke(app, ["parse", "--message", ORDER, "--out", str(out)])

    assert result.exit_code == 0
    assert "INFO: wrote report to" in result.output
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["msg_type"] == "D"


def test_parse_requires_a_message() -> None:
    result = runner.invoke(app, ["parse"])

    assert result.exit_code == 1
    assert "ERROR: message: a message is required" in result.output


def test_parse_rejects_text_and_file_together(tmp_path: Path) -> None:
    message_file = tmp_path / "order.txt"
    message_file.write_text(ORDER, encoding="utf-8")

    result = runner.invoke(
        app, ["parse", "--message", ORDER, "--message-file", str(message_file)]
    )

    assert result.exit_code == 1
    assert "not both" in result.output


def test_parse_rejects_unknown_report_mode() -> None:
    result = runner.invoke(app, ["parse", "--message", ORDER, "--report", "xml"])

    assert result.exit_code == 1
    assert "ERROR: --report must be one of: human, json." in result.output


def test_parse_rejects_unknown_dictionary_name() -> None:
    result = runner.invoke(app, ["parse", "--message", ORDER, "--dictionary-name", "FIX99"])

    assert result.exit_code == 1
    assert "Unsupported dictionary: FIX99" in result.output


def test_parse_rejects_invalid_settings(tmp_path: Path) -> None:
    settings = tmp_path / "settings.yaml"
    settings.write_text("bogus: 1\n", encoding="utf-8")

    result = runner.invoke(app, ["parse", "--message", ORDER, "--settings", str(settings)])

    assert result.exit_code == 1
    assert "Invalid settings schema" in result.output
