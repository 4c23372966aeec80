"""Built-in engine introspection capability.

The `Internal` capability is always registered by the scripting bridge.
It lets scripts read other stored macros and inspect the functions and
module search paths available to them.
"""

from typing import TYPE_CHECKING

from macro_engine.extensions import HostCapability, operation

if TYPE_CHECKING:
    from macro_engine.core.loader import CapabilitiesLoaderMixin
    from macro_engine.store import MacroStore


class Internal(HostCapability):
    """Engine introspection operations."""

    def __init__(self, registry: 'CapabilitiesLoaderMixin',
                 store: 'MacroStore | None' = None,
                 search_paths: tuple[str, ...] = ()) -> None:
        self.registry = registry
        self.store = store
        self.search_paths = search_paths

    @operation
    def InternalGetMacroText(self, name: str) -> str | None:  # noqa: N802
        """Return the source of a stored macro, or `None`."""
        if self.store is None:
            return None

        return self.store.get_macro_text(name)

    @operation
    def InternalListFunctions(self) -> dict[str, list[str]]:  # noqa: N802
        """Return script function names grouped by capability."""
        return {
            name: list(operations)
            for name, operations in self.registry.functions.items()
        }

    @operation
    def InternalGetSearchPaths(self) -> list[str]:  # noqa: N802
        """Return the configured module search paths in order."""
        return list(self.search_paths)
