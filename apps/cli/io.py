"""CLI I/O helpers for message input and atomic report writing."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any


def read_message(text: str | None, path: Path | None, *, label: str) -> str:
    """Return message text from exactly one of an inline value or a file."""

    if text is not None and path is not None:
        raise ValueError(f"{label}: pass either text or a file, not both")
    if path is not None:
        return path.read_text(encoding="utf-8", errors="replace")
    if text is not None:
        return text
    raise ValueError(f"{label}: a message is required")


def write_report_atomic(path: Path, payload: dict[str, Any]) -> None:
    """Write a JSON report atomically using a temporary file + replace."""

    path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write_json(path, payload)


def _atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        prefix=f"{path.name}.",
        suffix=".tmp",
    ) as tmp:
        tmp_path = Path(tmp.name)
        json.dump(payload, tmp, ensure_ascii=False, sort_keys=True, indent=2)

    tmp_path.replace(path)
