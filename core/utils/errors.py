"""Custom exceptions for core logic."""

from __future__ import annotations


class SchemaParseError(ValueError):
    """Raised when a dictionary schema source is not well-formed markup.

    Callers are expected to keep their previously active dictionary (or the
    built-in default) when this is raised.
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        source_name: str | None = None,
    ) -> None:
        super().__init__(message)
        self.line = line
        self.source_name = source_name
