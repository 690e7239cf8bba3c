"""Format-detecting tokenizer for tag=value messages.

Detection order is fixed; an earlier heuristic wins even when a later one
would also match:

1. bracketed log lines: ``<35> MsgType = D``
2. columnar dumps: ``MsgType 35 D``
3. inline ``tag=value`` tokens separated by whitespace
4. SOH/pipe/caret-A delimited ``tag=value`` (fallback)
"""

from __future__ import annotations

import logging
import re

from core.messages.models import Encoding, FieldPair, TokenizeResult

logger = logging.getLogger("fixlens.tokenizer")

SOH = "\x01"

_BRACKETED_RE = re.compile(r"<([0-9]+)>[^=]*=\s*(.*)")
_COLUMNAR_SNIFF_RE = re.compile(r"^[A-Za-z0-9_]+\s+[0-9]+\s+")
_COLUMNAR_LINE_RE = re.compile(r"^[\w\s&.]+?\s+([0-9]+)\s+(.*)$")
_INLINE_RE = re.compile(r"([0-9]+)=([^=\s\x01]+)")
_TAG_RE = re.compile(r"\s*([0-9]+)\s*")
_LINE_SPLIT_RE = re.compile(r"\r?\n")


def tokenize(raw: str) -> list[FieldPair]:
    """Return the ordered tag/value pairs found in ``raw``.

    Never raises: unparsable input yields an empty or partial list.
    """

    return list(tokenize_with_encoding(raw).pairs)


def tokenize_with_encoding(raw: str) -> TokenizeResult:
    """Tokenize ``raw`` and report which encoding heuristic fired."""

    if not isinstance(raw, str) or not raw.strip():
        return TokenizeResult(encoding="empty", pairs=())

    encoding, pairs = _detect_and_split(raw)
    logger.debug("tokenized message: encoding=%s pairs=%d", encoding, len(pairs))
    if not pairs:
        logger.debug("no tag=value pairs recognized in %d chars of input", len(raw))
    return TokenizeResult(encoding=encoding, pairs=tuple(pairs))


def normalize_delimiters(raw: str) -> str:
    """Map pipe and caret-A separators onto SOH."""

    return raw.replace("|", SOH).replace("^A", SOH)


def _detect_and_split(raw: str) -> tuple[Encoding, list[FieldPair]]:
    if _BRACKETED_RE.search(raw):
        return "bracketed", [
            FieldPair(tag=int(match.group(1)), value=match.group(2).strip())
            for match in _BRACKETED_RE.finditer(raw)
        ]

    lines = [line.strip() for line in _LINE_SPLIT_RE.split(raw)]
    if any(_COLUMNAR_SNIFF_RE.match(line) for line in lines):
        return "columnar", _split_columnar(lines)

    clean = normalize_delimiters(raw)
    if SOH not in clean and "=" in clean:
        inline = [
            FieldPair(tag=int(tag), value=value) for tag, value in _INLINE_RE.findall(clean)
        ]
        if inline:
            return "inline", inline

    return "delimited", _split_delimited(clean)


def _split_columnar(lines: list[str]) -> list[FieldPair]:
    pairs: list[FieldPair] = []
    for line in lines:
        match = _COLUMNAR_LINE_RE.match(line)
        if match is None:
            continue
        pairs.append(FieldPair(tag=int(match.group(1)), value=match.group(2).strip()))
    return pairs


def _split_delimited(clean: str) -> list[FieldPair]:
    pairs: list[FieldPair] = []
    for token in clean.split(SOH):
        if "=" not in token:
            continue
        key, _, value = token.partition("=")
        tag_match = _TAG_RE.fullmatch(key)
        if tag_match is None:
            continue
        pairs.append(FieldPair(tag=int(tag_match.group(1)), value=value))
    return pairs
