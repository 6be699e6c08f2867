"""Load raw definition documents by name from a directory.

This module handles all I/O for fetching definition documents and converting
them into Python dictionaries. Every ``*.yaml``, ``*.yml`` or ``*.json`` file
in the definitions directory is one API surface; the file stem is the
definition (and top-level command) name. JSON and YAML are both accepted
with automatic format detection.

No parsing beyond document decoding happens here: the raw dict is handed to
:class:`~apictl.parser.openapi.DefinitionParser`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from apictl.exceptions import DefinitionParseError

_SUFFIXES = (".yaml", ".yml", ".json")


class DefinitionStore:
    """Directory-backed store of raw definition documents.

    Args:
        directory: Directory scanned for definition files. A missing
            directory simply holds no definitions.

    Example::

        store = DefinitionStore(Path("~/.local/share/apictl/definitions"))
        for name in store.names():
            raw = store.load(name)
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        """The directory this store reads from."""
        return self._directory

    def names(self) -> list[str]:
        """Return the names of all definitions, sorted alphabetically."""
        if not self._directory.is_dir():
            return []
        return sorted(
            {p.stem for p in self._directory.iterdir() if p.is_file() and p.suffix.lower() in _SUFFIXES}
        )

    def load(self, name: str) -> dict[str, Any]:
        """Load and decode the definition called *name*.

        Args:
            name: Definition name (file stem).

        Returns:
            The decoded document. An empty file yields an empty dict, which
            the parser treats as a definition without operations.

        Raises:
            DefinitionParseError: If no file exists for *name* or its content
                cannot be decoded.
        """
        path = self._find(name)
        if path is None:
            raise DefinitionParseError(name, f"no definition file in {self._directory}")
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DefinitionParseError(name, f"failed to read {path}: {exc}") from exc

        if not content.strip():
            return {}

        suffix = path.suffix.lower()
        hint = "json" if suffix == ".json" else "yaml"
        return _parse_content(name, content, hint=hint)

    def _find(self, name: str) -> Path | None:
        for suffix in _SUFFIXES:
            candidate = self._directory / f"{name}{suffix}"
            if candidate.is_file():
                return candidate
        return None


def _parse_content(name: str, content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is 'yaml'), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Raises:
        DefinitionParseError: If the content cannot be parsed as either
            format or is not a mapping.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise DefinitionParseError(name, f"invalid JSON: {exc}") from exc
            json_error = exc
        else:
            return _ensure_mapping(name, result)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        msg = "failed to parse as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise DefinitionParseError(name, msg) from exc
    if result is None:
        return {}
    return _ensure_mapping(name, result)


def _ensure_mapping(name: str, result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        raise DefinitionParseError(
            name, f"document must be a JSON/YAML object (got {type(result).__name__})"
        )
    return result
