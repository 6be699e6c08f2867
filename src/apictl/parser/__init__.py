"""Definition parser -- load documents, resolve ``$ref`` pointers, build command trees.

This sub-package is the first half of the apictl pipeline: turning raw
definition documents (JSON or YAML files in the definitions directory) into
:class:`~apictl.models.CommandTree` instances the CLI driver and the
executors consume.

Typical usage::

    from apictl.parser import DefinitionParser, DefinitionStore

    store = DefinitionStore(get_definitions_dir())
    tree = DefinitionParser(plugin_commands).parse("du", store.load("du"))

Sub-modules:

* :mod:`~apictl.parser.loader` -- directory-backed store plus JSON/YAML
  format detection.
* :mod:`~apictl.parser.resolver` -- recursive ``$ref`` resolution with
  circular-reference detection.
* :mod:`~apictl.parser.openapi` -- walks the resolved document and builds
  the command tree, merging plugin commands.
"""

from apictl.parser.loader import DefinitionStore
from apictl.parser.openapi import DEFAULT_SERVER_URL, DefinitionParser, to_kebab

__all__ = ["DEFAULT_SERVER_URL", "DefinitionParser", "DefinitionStore", "to_kebab"]
