"""Resolve internal ``$ref`` pointers in definition documents.

Definitions commonly share parameter and schema objects through pointers
such as ``{"$ref": "#/components/parameters/FolderId"}``. Before a document
is walked, :func:`resolve_refs` produces a deep copy in which every such
pointer is replaced by the object it refers to.

Only internal references (``#/...``) are supported; anything else raises
:class:`~apictl.exceptions.DefinitionParseError`. Circular references are
left unresolved at the cycle point so that recursive schemas (trees, linked
lists) do not recurse forever.
"""

from __future__ import annotations

import copy
from typing import Any

from apictl.exceptions import DefinitionParseError


def resolve_refs(name: str, document: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *document* with all resolvable ``$ref`` pointers inlined.

    Args:
        name: Definition name, used in error messages.
        document: The raw definition document.

    Raises:
        DefinitionParseError: If a pointer is external or does not lead
            anywhere inside the document.

    Example::

        raw = {"paths": {"/a": {"get": {"parameters": [{"$ref": "#/p"}]}}},
               "p": {"name": "id", "in": "query"}}
        resolved = resolve_refs("demo", raw)
        # resolved["paths"]["/a"]["get"]["parameters"][0]["name"] == "id"
    """
    root = copy.deepcopy(document)
    return _RefResolver(name, root).resolve(root, frozenset())


class _RefResolver:
    def __init__(self, name: str, root: dict[str, Any]) -> None:
        self._name = name
        self._root = root

    def resolve(self, obj: Any, seen: frozenset[str]) -> Any:
        """Recursively inline pointers below *obj*.

        *seen* holds the pointers on the current resolution path; each
        branch gets its own set so that sibling references to the same
        target are all resolved.
        """
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str):
                if ref in seen:
                    return obj
                return self.resolve(self.lookup(ref), seen | {ref})
            return {key: self.resolve(value, seen) for key, value in obj.items()}
        if isinstance(obj, list):
            return [self.resolve(item, seen) for item in obj]
        return obj

    def lookup(self, ref: str) -> Any:
        """Follow a JSON pointer (RFC 6901) from the document root."""
        if not ref.startswith("#/"):
            raise DefinitionParseError(
                self._name, f"external $ref not supported: {ref}"
            )

        current: Any = self._root
        for segment in ref[2:].split("/"):
            segment = segment.replace("~1", "/").replace("~0", "~")
            if isinstance(current, dict) and segment in current:
                current = current[segment]
            elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
                current = current[int(segment)]
            else:
                raise DefinitionParseError(
                    self._name, f"cannot resolve $ref '{ref}': '{segment}' not found"
                )
        return current
