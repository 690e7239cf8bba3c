"""FastAPI wrapper for the fixlens analysis pipeline."""

from __future__ import annotations

import importlib.metadata
import json
import logging
import os
import threading
import time
import uuid
from typing import Any, TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError
from starlette.concurrency import run_in_threadpool

from apps.cli.formatters import OUTPUT_FORMATS
from core.config.settings_loader import load_settings
from core.dictionary.compiler import compile_dictionary
from core.dictionary.loader import DictionaryLoad, DictionaryRegistry, compile_or_fallback
from core.dictionary.models import Dictionary
from core.messages.tokenizer import tokenize
from core.orchestrator.models import DictionarySummary, DiffReport, ParseReport
from core.orchestrator.pipeline import (
    analyze_message,
    build_diff_report,
    build_parse_report,
    compare_messages,
    summarize_dictionary,
)
from core.utils.errors import SchemaParseError

app = FastAPI(title="fixlens API", version="0.1.0")
logger = logging.getLogger("fixlens.api")

REQUEST_ID_HEADER = "X-Fixlens-Request-Id"
_DEFAULT_MAX_MESSAGE_BYTES = 1024 * 1024

_RequestModel = TypeVar("_RequestModel", bound=BaseModel)


class ParseRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str
    dictionary_xml: str | None = None
    dictionary_name: str | None = None


class DiffRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    left: str
    right: str
    dictionary_xml: str | None = None
    dictionary_name: str | None = None


class DictionaryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dictionary_xml: str


class ApiRequestError(Exception):
    def __init__(
        self,
        *,
        status_code: int,
        error_code: str,
        message: str,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.message = message
        self.detail = detail or {}


_registry_lock = threading.Lock()
_registry_cache: DictionaryRegistry | None = None


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Ensure every response has a request id header."""

    request_id = uuid.uuid4().hex
    request.state.request_id = request_id
    try:
        response = await call_next(request)
    except Exception:  # noqa: BLE001
        _log_event(
            logging.ERROR,
            "error",
            request_id,
            error_code="INTERNAL_ERROR",
            status_code=500,
            failure_stage="middleware",
        )
        response = _error_response(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message="internal server error",
            request_id=request_id,
            detail={"path": request.url.path},
        )
    response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness endpoint."""

    return {"status": "ok"}


@app.get("/v1/meta")
async def meta_v1(request: Request) -> JSONResponse:
    """Metadata endpoint for clients picking dictionaries and formats."""

    request_id = _request_id_from_request(request)
    registry = await run_in_threadpool(_get_registry)
    payload = {
        "supported_dictionaries": registry.names(),
        "supported_output_formats": list(OUTPUT_FORMATS),
        "max_message_bytes": _max_message_bytes(),
        "version": app.version,
        "package_version": _package_version(),
    }
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content=payload,
    )


@app.post("/v1/parse", response_model=None)
async def parse_v1(request: Request) -> JSONResponse:
    """Tokenize and structure one message."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "init"
    _log_event(logging.INFO, "start", request_id, endpoint="parse")

    try:
        failure_stage = "validate_inputs"
        body = await _read_request_model(request, ParseRequest)

        failure_stage = "load_dictionary"
        loaded = await run_in_threadpool(
            _resolve_dictionary, body.message, body.dictionary_xml, body.dictionary_name
        )

        failure_stage = "pipeline"
        report = await run_in_threadpool(_parse_report, body.message, loaded.dictionary)
    except ApiRequestError as exc:
        return _request_error_response(exc, request_id, failure_stage)
    except Exception as exc:  # noqa: BLE001
        return _internal_error_response(exc, request_id, failure_stage, request_started)

    _log_event(
        logging.INFO,
        "done",
        request_id,
        endpoint="parse",
        encoding=report.encoding,
        pair_count=report.pair_count,
        dictionary_fallback=loaded.fallback_used,
        total_ms=_elapsed_ms(request_started),
    )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "request_id": request_id,
            "dictionary_fallback": loaded.fallback_used,
            "report": report.model_dump(mode="json"),
        },
    )


@app.post("/v1/diff", response_model=None)
async def diff_v1(request: Request) -> JSONResponse:
    """Align two messages and return the row-by-row comparison."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "init"
    _log_event(logging.INFO, "start", request_id, endpoint="diff")

    try:
        failure_stage = "validate_inputs"
        body = await _read_request_model(request, DiffRequest)

        failure_stage = "load_dictionary"
        loaded = await run_in_threadpool(
            _resolve_dictionary, body.left, body.dictionary_xml, body.dictionary_name
        )

        failure_stage = "pipeline"
        report = await run_in_threadpool(_diff_report, body.left, body.right, loaded.dictionary)
    except ApiRequestError as exc:
        return _request_error_response(exc, request_id, failure_stage)
    except Exception as exc:  # noqa: BLE001
        return _internal_error_response(exc, request_id, failure_stage, request_started)

    _log_event(
        logging.INFO,
        "done",
        request_id,
        endpoint="diff",
        rows=report.summary.total,
        identical=report.summary.identical,
        dictionary_fallback=loaded.fallback_used,
        total_ms=_elapsed_ms(request_started),
    )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "request_id": request_id,
            "dictionary_fallback": loaded.fallback_used,
            "report": report.model_dump(mode="json"),
        },
    )


@app.post("/v1/dictionary", response_model=None)
async def dictionary_v1(request: Request) -> JSONResponse:
    """Compile a dictionary document and summarize it."""

    request_started = time.perf_counter()
    request_id = _request_id_from_request(request)
    failure_stage = "init"
    _log_event(logging.INFO, "start", request_id, endpoint="dictionary")

    try:
        failure_stage = "validate_inputs"
        body = await _read_request_model(request, DictionaryRequest)

        failure_stage = "compile_dictionary"
        summary = await run_in_threadpool(_dictionary_summary, body.dictionary_xml)
    except ApiRequestError as exc:
        return _request_error_response(exc, request_id, failure_stage)
    except Exception as exc:  # noqa: BLE001
        return _internal_error_response(exc, request_id, failure_stage, request_started)

    _log_event(
        logging.INFO,
        "done",
        request_id,
        endpoint="dictionary",
        tag_count=summary.tag_count,
        group_schema_count=summary.group_schema_count,
        total_ms=_elapsed_ms(request_started),
    )
    return JSONResponse(
        status_code=200,
        headers={REQUEST_ID_HEADER: request_id},
        content={"request_id": request_id, "summary": summary.model_dump(mode="json")},
    )


async def _read_request_model(request: Request, model: type[_RequestModel]) -> _RequestModel:
    raw = await request.body()
    max_bytes = _max_message_bytes()
    if len(raw) > max_bytes:
        raise ApiRequestError(
            status_code=413,
            error_code="PAYLOAD_TOO_LARGE",
            message="request body too large",
            detail={"max_bytes": max_bytes},
        )

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request body must be UTF-8 JSON",
            detail={"error": str(exc)},
        ) from exc

    if not isinstance(payload, dict):
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request JSON must be an object",
        )

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="request JSON schema validation failed",
            detail={"error": str(exc)},
        ) from exc


def _resolve_dictionary(
    raw_message: str,
    dictionary_xml: str | None,
    dictionary_name: str | None,
) -> DictionaryLoad:
    if dictionary_xml is not None and dictionary_name is not None:
        raise ApiRequestError(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message="dictionary_xml and dictionary_name cannot be used together",
        )

    registry = _get_registry()
    if dictionary_xml is not None:
        return compile_or_fallback(
            dictionary_xml,
            fallback=registry.default,
            max_depth=registry.settings.max_schema_depth,
            source_name="dictionary_xml",
        )

    dictionary: Dictionary
    if dictionary_name is not None:
        try:
            dictionary = registry.get(dictionary_name)
        except ValueError as exc:
            raise ApiRequestError(
                status_code=400,
                error_code="INVALID_ARGUMENT",
                message=str(exc),
                detail={"supported_dictionaries": registry.names()},
            ) from exc
    else:
        dictionary = registry.detect(tokenize(raw_message))
    return DictionaryLoad(dictionary=dictionary)


def _parse_report(raw_message: str, dictionary: Dictionary) -> ParseReport:
    analysis = analyze_message(raw_message, dictionary, settings=_get_registry().settings)
    return build_parse_report(analysis, dictionary)


def _diff_report(raw_left: str, raw_right: str, dictionary: Dictionary) -> DiffReport:
    comparison = compare_messages(
        raw_left, raw_right, dictionary, settings=_get_registry().settings
    )
    return build_diff_report(comparison, dictionary)


def _dictionary_summary(dictionary_xml: str) -> DictionarySummary:
    try:
        compiled = compile_dictionary(
            dictionary_xml,
            max_depth=_get_registry().settings.max_schema_depth,
            source_name="dictionary_xml",
        )
    except SchemaParseError as exc:
        raise ApiRequestError(
            status_code=422,
            error_code="SCHEMA_PARSE_ERROR",
            message="dictionary schema could not be parsed",
            detail={"field": "dictionary_xml", "error": str(exc), "line": exc.line},
        ) from exc
    return summarize_dictionary(compiled)


def _get_registry() -> DictionaryRegistry:
    global _registry_cache

    with _registry_lock:
        if _registry_cache is None:
            _registry_cache = DictionaryRegistry(load_settings())
        return _registry_cache


def _request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    generated = uuid.uuid4().hex
    request.state.request_id = generated
    return generated


def _max_message_bytes() -> int:
    raw = os.getenv("FIXLENS_MAX_MESSAGE_BYTES")
    if raw is None:
        return _DEFAULT_MAX_MESSAGE_BYTES
    try:
        parsed = int(raw)
    except ValueError:
        return _DEFAULT_MAX_MESSAGE_BYTES
    return parsed if parsed > 0 else _DEFAULT_MAX_MESSAGE_BYTES


def _request_error_response(
    exc: ApiRequestError, request_id: str, failure_stage: str
) -> JSONResponse:
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code=exc.error_code,
        status_code=exc.status_code,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=exc.status_code,
        error_code=exc.error_code,
        message=exc.message,
        request_id=request_id,
        detail=exc.detail,
    )


def _internal_error_response(
    exc: Exception, request_id: str, failure_stage: str, request_started: float
) -> JSONResponse:
    _log_event(
        logging.ERROR,
        "error",
        request_id,
        error_code="INTERNAL_ERROR",
        status_code=500,
        failure_stage=failure_stage,
    )
    return _error_response(
        status_code=500,
        error_code="INTERNAL_ERROR",
        message="internal server error",
        request_id=request_id,
        detail={"error": str(exc), "total_ms": _elapsed_ms(request_started)},
    )


def _dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _package_version() -> str:
    try:
        return importlib.metadata.version("fixlens")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _error_response(
    *,
    status_code: int,
    error_code: str,
    message: str,
    request_id: str,
    detail: dict[str, Any] | None = None,
) -> JSONResponse:
    payload_detail = dict(detail or {})
    payload_detail["request_id"] = request_id

    return JSONResponse(
        status_code=status_code,
        headers={REQUEST_ID_HEADER: request_id},
        content={
            "error_code": error_code,
            "message": message,
            "detail": payload_detail,
        },
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _log_event(level: int, event: str, request_id: str, **fields: Any) -> None:
    payload = {
        "event": event,
        "request_id": request_id,
        **fields,
    }
    logger.log(level, _dump_json(payload))
