"""Generate the click command tree from parsed definitions."""

from apictl.generator.command_tree import (
    DefinitionGroup,
    OperationGroup,
    build_command,
)

__all__ = ["DefinitionGroup", "OperationGroup", "build_command"]
