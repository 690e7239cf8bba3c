from __future__ import annotations

import httpx
import pytest

from apps.api.main import app

DICTIONARY_XML = """
<fix>
  <messages>
    <message name="NewOrderSingle" msgtype="D">
      <group name="NoPartyIDs"><field name="PartyID"/><field name="PartyRole"/></group>
    </message>
  </messages>
</fix>
"""


def _client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://testserver")


@pytest.mark.anyio
async def test_healthz_has_request_id_header() -> None:
    async with _client() as client:
        response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Fixlens-Request-Id"]


@pytest.mark.anyio
async def test_meta_lists_dictionaries_and_formats() -> None:
    async with _client() as client:
        response = await client.get("/v1/meta")

    assert response.status_code == 200
    payload = response.json()
    assert payload["supported_dictionaries"] == ["FIX40", "FIX41", "FIX42", "FIX43", "FIX44"]
    assert payload["supported_output_formats"] == ["pipe", "soh", "bracketed", "columnar", "json"]
    assert payload["version"] == "0.1.0"
    assert "X-Fixlens-Request-Id" in response.headers


@pytest.mark.anyio
async def test_dictionary_summary() -> None:
    async with _client() as client:
        response = await client.post("/v1/dictionary", json={"dictionary_xml": DICTIONARY_XML})

    assert response.status_code == 200
    summary = response.json()["summary"]
    assert summary["message_types"] == ["D"]
    assert summary["group_schemas"]["453"] == {
        "name": "NoPartyIDs",
        "delimiter": 448,
        "fields": [448, 452],
    }


@pytest.mark.anyio
async def test_malformed_dictionary_returns_schema_error() -> None:
    async with _client() as client:
        response = await client.post("/v1/dictionary", json={"dictionary_xml": "<fix><fields>"})

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "SCHEMA_PARSE_ERROR"
    assert body["detail"]["field"] == "dictionary_xml"
    assert body["detail"]["request_id"] == response.headers["X-Fixlens-Request-Id"]
