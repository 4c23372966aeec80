"""Resumable entrypoint of a scripting-mode macro.

The entrypoint coroutine wraps the generator function produced from the
macro source. It is an explicit state machine; `resume` is its only
transition function:

    NOT_STARTED --resume--> SUSPENDED --resume--> ... --> COMPLETED
                     \\                   \\
                      +-------------------+--> FAILED
"""

from enum import StrEnum
from traceback import extract_tb
from typing import TYPE_CHECKING, Any

from macro_engine.errors import ErrorContext, MacroError, ScriptRuntimeError

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


class CoroutineState(StrEnum):
    """Lifecycle state of an entrypoint coroutine."""

    NOT_STARTED = 'not-started'
    SUSPENDED = 'suspended'
    COMPLETED = 'completed'
    FAILED = 'failed'


class EntrypointCoroutine:
    """Resumable wrapper around a macro generator function.

    Each resume runs the macro until its next `yield` and returns the
    yielded value as a one-element tuple, or an empty tuple once the
    macro has finished.
    """

    def __init__(self, factory: 'Callable[[], Generator[Any, None, Any]]', *,
                 name: str | None = None,
                 chunkname: str | None = None,
                 line_offset: int = 0) -> None:
        """Initialize the coroutine.

        Args:
            factory: Zero-argument generator function of the macro.
            name: Macro name reported in errors.
            chunkname: Filename the macro source was compiled with.
            line_offset: Number of synthetic lines preceding the macro
                source in the compiled code.
        """
        self.factory = factory
        self.name = name
        self.chunkname = chunkname
        self.line_offset = line_offset

        self.state = CoroutineState.NOT_STARTED
        self._generator: Generator[Any, None, Any] | None = None

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.name!r} {self.state}>'

    @property
    def finished(self) -> bool:
        """Whether the macro has returned."""
        return self.state == CoroutineState.COMPLETED

    def resume(self) -> tuple[Any, ...]:
        """Run the macro until its next yield.

        Returns:
            A one-element tuple with the yielded value, or an empty
            tuple once the macro has finished. Resuming a finished
            coroutine keeps returning an empty tuple.

        Raises:
            ScriptRuntimeError: If the macro raises, or if the
                coroutine has already failed.
        """
        if self.state == CoroutineState.COMPLETED:
            return ()

        if self.state == CoroutineState.FAILED:
            raise ScriptRuntimeError('Script can not be resumed after a failure', context=ErrorContext(
                filename=self.name,
            ))

        if self._generator is None:
            self._generator = self.factory()

        try:
            value = next(self._generator)

        except StopIteration:
            self.state = CoroutineState.COMPLETED
            self._generator = None
            return ()

        except MacroError:
            self.state = CoroutineState.FAILED
            raise

        except Exception as base:
            self.state = CoroutineState.FAILED
            raise ScriptRuntimeError(f'Script raised {type(base).__name__}: {base}', context=ErrorContext(
                filename=self.name,
                line_num=self.locate(base),
                error=base,
            )) from base

        self.state = CoroutineState.SUSPENDED

        return (value,)

    def locate(self, error: BaseException) -> int | None:
        """Find the zero-based macro line where an error was raised.

        Returns:
            The innermost line of the macro source in the traceback,
            or `None` if the error did not pass through it.
        """
        if self.chunkname is None:
            return None

        for frame in reversed(extract_tb(error.__traceback__)):
            if frame.filename == self.chunkname and frame.lineno is not None:
                return max(frame.lineno - 1 - self.line_offset, 0)

        return None

    def close(self) -> None:
        """Release the generator.

        Raises:
            RuntimeError: If the macro refuses to stop.
        """
        generator, self._generator = self._generator, None
        if generator is not None:
            generator.close()
