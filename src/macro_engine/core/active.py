"""Steppable execution of a single macro.

`ActiveMacro` is the surface the host loop drives. It hides which of the
two execution modes is in use:

- native macros are rewritten for craft looping, parsed once and walked
  with a step cursor;
- scripting-mode macros are materialized lazily, one command per resume
  of the script coroutine. Materialized commands are kept in an
  append-only audit list.
"""

from logging import getLogger
from typing import TYPE_CHECKING, Any

from macro_engine.errors import (
    ErrorContext,
    ScriptRuntimeError,
    UnsupportedOperationError,
)
from macro_engine.schema import Language
from macro_engine.scripting import ScriptingBridge
from macro_engine.settings import EngineSettings

from .craftloop import CraftLoop
from .cursor import StepCursor

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from types import TracebackType
    from typing import Self

    from macro_engine.extensions import Capability
    from macro_engine.schema import Macro, MacroCommand
    from macro_engine.store import MacroStore

    from .parser import CommandParser

logger = getLogger(__name__)


class ActiveMacro:
    """One in-flight execution of a macro snapshot."""

    def __init__(self, macro: 'Macro', parser: 'CommandParser',  # noqa: PLR0913
                 settings: EngineSettings | None = None, *,
                 capabilities: 'Iterable[Capability]' = (),
                 services: 'Mapping[str, Any] | None' = None,
                 store: 'MacroStore | None' = None,
                 strict: bool = False) -> None:
        """Initialize the execution.

        Native macros are transformed and parsed immediately; the
        scripting interpreter is only started by the first
        `current_step` call.

        Args:
            macro: Macro snapshot to execute.
            parser: Parser producing commands from DSL text.
            settings: Engine settings; defaults are used if omitted.
            capabilities: Host capabilities exposed to scripts.
            services: Host-services registry exposed to scripts.
            store: Macro store backing `require` in scripts.
            strict: Whether capability issues raise instead of warn.

        Raises:
            ConfigurationError: If the craft-loop template is invalid.
            ParseError: If the native macro text is malformed.
        """
        self.macro = macro
        self.parser = parser
        self.settings = settings or EngineSettings()
        self.line_count = len(macro.lines)

        self.bridge: ScriptingBridge | None = None
        self.disposed = False

        if self.scripting:
            self.cursor = StepCursor()
            self._bridge_options: dict[str, Any] = {
                'capabilities': tuple(capabilities),
                'services': services,
                'store': store,
                'strict': strict,
            }
        else:
            body = CraftLoop(self.settings).transform_macro(macro)
            self.cursor = StepCursor(parser.parse(body))

        logger.debug('Activated %s macro %r (%d lines)', macro.language, macro.name, self.line_count)

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.macro.name!r} step={self.cursor.index}>'

    def __enter__(self) -> 'Self':
        return self

    def __exit__(self, exc_type: type[BaseException] | None,
                 exc_value: BaseException | None,
                 traceback: 'TracebackType | None') -> None:
        self.dispose()

    @property
    def scripting(self) -> bool:
        """Whether the macro runs in scripting mode."""
        return self.macro.language == Language.PYTHON

    @property
    def steps(self) -> list['MacroCommand']:
        """Materialized commands in order."""
        return self.cursor.steps

    @property
    def step_index(self) -> int:
        """Current cursor position."""
        return self.cursor.index

    @property
    def finished(self) -> bool:
        """Whether no further commands will be produced."""
        if self.disposed:
            return True

        if self.scripting:
            return self.bridge is not None and self.bridge.finished

        return self.cursor.exhausted

    def current_step(self) -> 'MacroCommand | None':
        """Return the next command to execute.

        Native macros return the command at the cursor without moving
        it. Scripting-mode macros resume the script once; `None` means
        either that the yielded line produced no command or that the
        script has finished (see `finished`).

        Raises:
            ScriptInitError: If the script can not be started.
            ScriptRuntimeError: If the script fails or yields a value
                that is not a string.
        """
        if self.disposed:
            return None

        if not self.scripting:
            return self.cursor.current()

        results = self._get_bridge().resume()
        if not results:
            return None

        text = results[0]
        if not isinstance(text, str):
            raise ScriptRuntimeError('Script yielded a non-string', context=ErrorContext(
                filename=self.macro.name,
                step_num=len(self.cursor),
                element=text,
            ))

        command = self.parser.parse_line(text)
        if command is not None:
            self.cursor.append(command)

        return command

    def advance(self) -> None:
        """Move the cursor to the next command."""
        self.cursor.advance()

    def loop_to_start(self) -> None:
        """Rewind so that the next `advance` lands on the first command.

        Raises:
            UnsupportedOperationError: For scripting-mode macros, which
                express repetition with their own control flow.
        """
        if self.scripting:
            raise UnsupportedOperationError('Loop is not supported for scripting-mode macros', context=ErrorContext(
                filename=self.macro.name,
            ))

        self.cursor.rewind()

    def dispose(self) -> None:
        """Release the interpreter. Never raises; repeated calls are no-ops."""
        if self.disposed:
            return

        self.disposed = True

        bridge, self.bridge = self.bridge, None
        if bridge is not None:
            bridge.dispose()

        logger.debug('Disposed macro %r', self.macro.name)

    def _get_bridge(self) -> ScriptingBridge:
        if self.bridge is None:
            self.bridge = ScriptingBridge(
                self.macro.contents,
                name=self.macro.name,
                settings=self.settings,
                **self._bridge_options,
            )

        return self.bridge
