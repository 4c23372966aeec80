"""Describe-and-dispatch interface for host capabilities.

Every capability exposes its operation names through `describe` and
executes an operation through `dispatch`. The scripting bridge iterates
this interface to bind script functions instead of reflecting over
arbitrary host objects.
"""

from collections.abc import Callable  # noqa: TC003
from typing import Any, ClassVar, Protocol, TypeVar, runtime_checkable

from pydantic import Field

from macro_engine.errors import UnsupportedOperationError
from macro_engine.models import SchemaModel
from macro_engine.names import Operation  # noqa: TC001

#: Attribute set on methods exposed to scripts.
OPERATION_MARKER = '__macro_operation__'


@runtime_checkable
class Capability(Protocol):
    """Uniform interface of a host capability."""

    name: str

    def describe(self) -> tuple[str, ...]:
        """Return the names of all operations."""
        ...  # pragma: no cover

    def dispatch(self, operation: str, /, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        """Invoke an operation by name."""
        ...  # pragma: no cover


F = TypeVar('F', bound=Callable[..., Any])


def operation(func: F) -> F:
    """Mark a `HostCapability` method as callable from scripts."""
    setattr(func, OPERATION_MARKER, True)
    return func


class HostCapability:
    """Base class for host objects exposed to scripting-mode macros.

    Subclasses mark public methods with `@operation`. The capability
    name defaults to the class name.

    Example:
        >>> class Inventory(HostCapability):
        ...     @operation
        ...     def GetItemCount(self, item_id: int) -> int:
        ...         return 3
        >>> Inventory().dispatch('GetItemCount', 5024)
        3
    """

    name: ClassVar[str] = ''

    def __init_subclass__(cls, **kwargs: Any) -> None:  # noqa: ANN401
        super().__init_subclass__(**kwargs)
        if not cls.__dict__.get('name'):
            cls.name = cls.__name__

    def describe(self) -> tuple[str, ...]:
        """Return the names of all methods marked as operations."""
        return tuple(
            attribute
            for attribute in dir(type(self))
            if not attribute.startswith('_')
            and getattr(getattr(type(self), attribute), OPERATION_MARKER, False)
        )

    def dispatch(self, operation: str, /, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        """Invoke an operation by name.

        Raises:
            UnsupportedOperationError: If the name is not an operation
                of this capability.
        """
        if operation not in self.describe():
            raise UnsupportedOperationError(f'{self.name} has no operation {operation!r}')

        return getattr(self, operation)(*args, **kwargs)


class FunctionCapability(SchemaModel):
    """Declarative capability built from plain callables."""

    name: Operation = Field(
        title='Capability name',
        description='Name of the namespace object bound in scripts.',
    )

    operations: dict[Operation, Callable[..., Any]] = Field(
        default_factory=dict,
        title='Operations',
        description='Mapping of operation names to the callables implementing them.',
    )

    def describe(self) -> tuple[str, ...]:
        """Return the operation names in declaration order."""
        return tuple(self.operations)

    def dispatch(self, operation: str, /, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        """Invoke an operation by name.

        Raises:
            UnsupportedOperationError: If the operation is not declared.
        """
        if operation not in self.operations:
            raise UnsupportedOperationError(f'{self.name} has no operation {operation!r}')

        return self.operations[operation](*args, **kwargs)


def bind_operation(capability: Capability, operation: str) -> Callable[..., Any]:
    """Create a script function dispatching to a capability operation.

    Args:
        capability: Capability owning the operation.
        operation: Operation name.

    Returns:
        A callable named after the operation.
    """
    def function(*args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        return capability.dispatch(operation, *args, **kwargs)

    function.__name__ = function.__qualname__ = operation
    function.__doc__ = f'{capability.name}.{operation}'

    return function
