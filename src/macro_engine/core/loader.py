"""Capability discovery and registration infrastructure.

This module defines a mixin responsible for registering host capabilities
as script functions and for discovering additional capabilities exposed
via Python entry points.

Capabilities are loaded defensively: individual failures and name
collisions do not interrupt registration unless strict mode is enabled.
"""

from logging import getLogger
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any
from warnings import warn

from macro_engine.errors import CapabilityError, CapabilityWarning
from macro_engine.extensions import Capability, HostCapability, bind_operation
from macro_engine.names import OPERATION_PATTERN

if TYPE_CHECKING:
    from collections.abc import Callable
    from importlib.metadata import EntryPoint

#: Entry point group scanned by `load_capabilities`.
ENTRYPOINT_GROUP = 'macro_capabilities'

logger = getLogger(__name__)


class CapabilitiesLoaderMixin:
    """Mixin defining capability registration behavior.

    Attributes:
        strict_mode: If True, any registration issue raises an error.
            If False, issues are emitted as warnings and registration
            continues.
        capabilities: Registered capabilities by name.
        operations: Script functions by operation name.
    """

    strict_mode: bool = False

    capabilities: dict[str, Capability]
    operations: dict[str, 'Callable[..., Any]']

    def add_capability(self, capability: Capability,
                       entrypoint: 'EntryPoint | None' = None) -> None:
        """Register every operation of a capability as a script function.

        Args:
            capability: Capability to register.
            entrypoint: Entry point the capability was loaded from, if
                applicable. Used for diagnostics.

        Raises:
            CapabilityError: If the capability shadows an existing one,
                declares an invalid operation name, or an operation
                shadows an existing function, on strict mode.
        """
        module = f'{entrypoint.value if entrypoint else type(capability).__module__}'

        if capability.name in self.capabilities and (error := self.emit_capability_issue(
            f'Capability {capability.name!r} from {module!r} is shadowing an existing',
            entrypoint,
        )):
            raise error

        for name in capability.describe():
            if not OPERATION_PATTERN.match(name):
                if error := self.emit_capability_issue(
                    f'Operation {name!r} of {capability.name!r} is not a valid identifier',
                    entrypoint,
                ):
                    raise error
                continue

            if name in self.operations and (error := self.emit_capability_issue(
                f'Operation {capability.name}.{name} from {module!r} is shadowing an existing',
                entrypoint,
            )):
                raise error

            logger.debug('Adding script function: %s.%s', capability.name, name)
            self.operations[name] = bind_operation(capability, name)

        self.capabilities[capability.name] = capability

    def emit_capability_issue(self, message: str,
                              entrypoint: 'EntryPoint | None' = None) -> Exception | None:
        """Emit a capability warning or return the exception.

        Args:
            message: Warning message to emit.
            entrypoint: Entry point associated with the issue, if any.

        Returns:
            CapabilityError on strict mode, otherwise `None`
                with producing a CapabilityWarning.
        """
        if self.strict_mode:
            return CapabilityError(message, entrypoint=entrypoint)

        warn(message, category=CapabilityWarning, stacklevel=2)

        return None

    def namespaces(self) -> dict[str, SimpleNamespace]:
        """Build one namespace object per capability.

        Returns:
            Mapping of capability names to objects holding that
            capability's script functions as attributes.
        """
        return {
            name: SimpleNamespace(**{
                operation: bind_operation(capability, operation)
                for operation in capability.describe()
                if OPERATION_PATTERN.match(operation)
            })
            for name, capability in self.capabilities.items()
        }

    @property
    def functions(self) -> dict[str, tuple[str, ...]]:
        """Operation names grouped by capability name."""
        return {
            name: tuple(sorted(
                operation
                for operation in capability.describe()
                if OPERATION_PATTERN.match(operation)
            ))
            for name, capability in sorted(self.capabilities.items())
        }

    def _load_capability(self, entrypoint: 'EntryPoint') -> None:
        """Load and register a single capability entry point.

        The entry point may refer to a capability instance or to a
        `HostCapability` subclass, which is instantiated without
        arguments.

        Args:
            entrypoint: Entry point describing the capability.

        Raises:
            CapabilityError: If any loading issues occur on strict mode.
        """
        try:
            capability = entrypoint.load()
            if isinstance(capability, type) and issubclass(capability, HostCapability):
                capability = capability()

        except Exception as base:
            if error := self.emit_capability_issue(
                f'Failed to load entrypoint {entrypoint.name!r}',
                entrypoint,
            ):
                raise error from base
            return None

        if not isinstance(capability, Capability):
            if error := self.emit_capability_issue(
                f'Loaded from entrypoint {entrypoint.name!r} object is not a capability',
                entrypoint,
            ):
                raise error
            return None

        self.add_capability(capability, entrypoint)

    def clear_capabilities(self) -> None:
        """Clear all registered capabilities and script functions."""
        self.capabilities = {}
        self.operations = {}

    def load_capabilities(self) -> None:
        """Load capabilities via entry points and register them.

        Discovers capabilities from the `macro_capabilities` entry point
        group.

        Raises:
            CapabilityError: If any loading issues occur on strict mode.
        """
        from importlib.metadata import entry_points  # noqa: PLC0415

        for entrypoint in entry_points().select(group=ENTRYPOINT_GROUP):
            self._load_capability(entrypoint)
