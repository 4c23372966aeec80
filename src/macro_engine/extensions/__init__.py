"""Host capability definitions.

A capability is a named group of host operations made available to
scripting-mode macros. The engine does not interpret their semantics; it
only enumerates operation names and dispatches calls by name.

Two implementations of the uniform `Capability` interface are provided:
- `HostCapability`, a base class for objects whose methods are marked
  with the `operation` decorator;
- `FunctionCapability`, a declarative container of plain callables.
"""

from .capabilities import (
    Capability,
    FunctionCapability,
    HostCapability,
    bind_operation,
    operation,
)

__all__ = (
    'Capability',
    'FunctionCapability',
    'HostCapability',
    'bind_operation',
    'operation',
)
