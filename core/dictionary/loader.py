"""Dictionary loading, fallback handling, and BeginString-based selection."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from core.config.models import AnalyzerSettings
from core.dictionary.compiler import DEFAULT_MAX_SCHEMA_DEPTH, compile_dictionary
from core.dictionary.defaults import DEFAULT_DICTIONARY
from core.dictionary.models import Dictionary
from core.messages.models import FieldPair
from core.utils.errors import SchemaParseError

logger = logging.getLogger("fixlens.dictionary")


@dataclass(frozen=True)
class DictionaryLoad:
    """Outcome of a load that may have fallen back to another dictionary."""

    dictionary: Dictionary
    fallback_used: bool = False
    error: str | None = None


def load_dictionary(
    path: Path | None = None,
    *,
    base: Dictionary = DEFAULT_DICTIONARY,
    max_depth: int = DEFAULT_MAX_SCHEMA_DEPTH,
) -> Dictionary:
    """Load a dictionary file; ``None`` selects the built-in default.

    Raises:
        ValueError: the file does not exist.
        SchemaParseError: the file is not well-formed markup.
    """

    if path is None:
        return base

    try:
        source = path.read_bytes()
    except FileNotFoundError as exc:
        raise ValueError(f"Dictionary file not found: {path}") from exc

    return compile_dictionary(source, base=base, max_depth=max_depth, source_name=path.name)


def load_dictionary_or_fallback(
    path: Path | None,
    *,
    fallback: Dictionary = DEFAULT_DICTIONARY,
    max_depth: int = DEFAULT_MAX_SCHEMA_DEPTH,
) -> DictionaryLoad:
    """Load ``path`` and keep ``fallback`` when the schema cannot be used."""

    try:
        return DictionaryLoad(dictionary=load_dictionary(path, max_depth=max_depth))
    except (SchemaParseError, ValueError) as exc:
        logger.warning("keeping previous dictionary; %s could not be loaded: %s", path, exc)
        return DictionaryLoad(dictionary=fallback, fallback_used=True, error=str(exc))


def compile_or_fallback(
    source: str | bytes,
    *,
    fallback: Dictionary = DEFAULT_DICTIONARY,
    max_depth: int = DEFAULT_MAX_SCHEMA_DEPTH,
    source_name: str | None = None,
) -> DictionaryLoad:
    """Compile inline schema markup and keep ``fallback`` on parse errors."""

    try:
        dictionary = compile_dictionary(source, max_depth=max_depth, source_name=source_name)
    except SchemaParseError as exc:
        logger.warning("keeping previous dictionary; schema could not be parsed: %s", exc)
        return DictionaryLoad(dictionary=fallback, fallback_used=True, error=str(exc))
    return DictionaryLoad(dictionary=dictionary)


class DictionaryRegistry:
    """Named dictionaries from ``settings.dictionary_dir`` with auto-detection.

    Compiled dictionaries are cached; the cache map is replaced wholesale
    on insert and a cached Dictionary is never mutated, so callers may keep
    using one while another is being compiled.
    """

    def __init__(
        self,
        settings: AnalyzerSettings,
        *,
        default: Dictionary = DEFAULT_DICTIONARY,
    ) -> None:
        self._settings = settings
        self._default = default
        self._cache: dict[str, Dictionary] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> AnalyzerSettings:
        return self._settings

    @property
    def default(self) -> Dictionary:
        return self._default

    def names(self) -> list[str]:
        """Return supported dictionary names in stable order."""

        return self._settings.dictionary_names()

    def get(self, name: str) -> Dictionary:
        """Return the dictionary registered under ``name`` (e.g. ``FIX44``)."""

        for file_name in self._settings.dictionary_files.values():
            if Path(file_name).stem == name:
                return self._load_file(file_name)
        raise ValueError(f"Unsupported dictionary: {name}")

    def for_begin_string(self, begin_string: str | None) -> Dictionary:
        """Pick the dictionary matching a BeginString value such as ``FIX.4.4``."""

        if begin_string is None:
            return self._default
        file_name = self._settings.dictionary_files.get(begin_string.strip())
        if file_name is None:
            logger.debug("no dictionary registered for BeginString %r", begin_string)
            return self._default
        return self._load_file(file_name)

    def detect(self, pairs: Sequence[FieldPair]) -> Dictionary:
        """Auto-detect the dictionary from the message's BeginString field."""

        begin_string = next(
            (pair.value for pair in pairs if pair.tag == self._settings.begin_string_tag),
            None,
        )
        return self.for_begin_string(begin_string)

    def _load_file(self, file_name: str) -> Dictionary:
        directory = self._settings.dictionary_dir
        if directory is None:
            return self._default

        with self._lock:
            cached = self._cache.get(file_name)
            if cached is not None:
                return cached

            path = directory / file_name
            if not path.is_file():
                logger.warning("dictionary file %s not found; using default dictionary", path)
                dictionary = self._default
            else:
                dictionary = load_dictionary_or_fallback(
                    path,
                    fallback=self._default,
                    max_depth=self._settings.max_schema_depth,
                ).dictionary

            self._cache = {**self._cache, file_name: dictionary}
            return dictionary
