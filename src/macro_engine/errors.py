"""Engine error hierarchy.

Every error raised by the engine derives from `MacroError`. An error may
carry an `ErrorContext` pointing at the macro, line and materialized step
that failed; `str(error)` renders the message followed by that location
and a short YAML dump of the offending element.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump
from yaml.error import MarkedYAMLError

if TYPE_CHECKING:
    from importlib.metadata import EntryPoint
    from typing import Self

    from pydantic import ValidationError

#: Name shown when an error has no macro name.
UNNAMED_MACRO = '<macro>'
#: Replacement for values that are not plain data.
OPAQUE_VALUE = '<runtime object>'

LOCATION_INDENT = ' ' * 4
SNIPPET_INDENT = LOCATION_INDENT * 2
SNIPPET_HEADER = f'{SNIPPET_INDENT} ...{linesep}'

PLAIN_TYPES = (str, bytes, int, float, bool)


class ErrorContext(TypedDict, total=False):
    """Optional details locating an error.

    Line, column and step numbers are zero-based and rendered one-based.
    """

    #: Macro name, or the file a module or library was read from.
    filename: str | None

    line_num: int | None
    column_num: int | None

    #: Index of the materialized step.
    step_num: int | None

    #: Exception the error was raised from.
    error: Exception | None

    #: Offending value: a source line, a yielded object, a document.
    element: Any


def plain(value: Any) -> Any:  # noqa: ANN401
    """Reduce a value to data that can be dumped safely."""
    if value is None or isinstance(value, PLAIN_TYPES):
        return value

    if isinstance(value, dict):
        return {key: plain(item) for key, item in value.items()}

    if isinstance(value, (list, tuple, set)):
        return [plain(item) for item in value]

    return OPAQUE_VALUE


def indent_lines(text: str, prefix: str) -> str:
    """Prefix every non-blank line, dropping YAML end markers."""
    return linesep.join(
        f'{prefix}{line}'
        for line in text.splitlines()
        if line.strip() not in ('', '...')
    )


class ErrorFormatter:
    """Mixin rendering a message together with its error context."""

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Render a message, its location and a snippet of the element."""
        if not context:
            return message

        return linesep.join((message, cls.describe_location(context))) + cls.describe_element(context)

    @staticmethod
    def describe_location(context: ErrorContext) -> str:
        """Render where the error happened.

        Example:
            `    in "Opener", line 3, column 5` followed, when the step is
            known, by `    on step 2`.
        """
        where = f'{LOCATION_INDENT}in "{context.get("filename") or UNNAMED_MACRO}"'

        if (line_num := context.get('line_num')) is not None:
            where += f', line {line_num + 1}'
            if (column_num := context.get('column_num')) is not None:
                where += f', column {column_num + 1}'

        lines = [where]
        if (step_num := context.get('step_num')) is not None:
            lines.append(f'{LOCATION_INDENT}on step {step_num + 1}')

        return linesep.join(lines) + linesep

    @staticmethod
    def describe_element(context: ErrorContext) -> str:
        """Render the offending element, or the YAML source around the error."""
        error = context.get('error')
        if isinstance(error, MarkedYAMLError) and error.problem_mark:
            return indent_lines(error.problem_mark.get_snippet(indent=0) or '', SNIPPET_INDENT)

        if (element := context.get('element')) is None:
            return ''

        data = dump(plain(element), indent=2, sort_keys=False, allow_unicode=True)

        return f'{SNIPPET_HEADER}{indent_lines(data, SNIPPET_INDENT)}{linesep}'


class CapabilityWarning(UserWarning):
    """Warning emitted for non-fatal capability registration issues.

    Used when a capability cannot be loaded or shadows an already
    registered script function, and the engine runs in relaxed mode.
    """


class MacroError(Exception, ErrorFormatter):
    """Base exception for all engine errors.

    All custom exceptions raised by the engine inherit from this class
    to allow unified error handling by the host.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Optional error context.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """Render the message with its context."""
        return self.format(self.message, self.context)


class CapabilityError(MacroError):
    """Error raised for fatal capability registration failures.

    Raised in strict mode when a capability entry point is invalid,
    fails to load, or shadows an existing script function.
    """

    def __init__(self, message: str, *,
                 entrypoint: 'EntryPoint | None' = None) -> None:
        """Initialize a capability error.

        Args:
            message: Human-readable error description.
            entrypoint: Optional entry point associated with the error.
        """
        self.entrypoint = entrypoint

        super().__init__(message)


class ConfigurationError(MacroError):
    """Error raised for invalid engine configuration or macro libraries.

    Covers a craft-loop template without the macro placeholder as well
    as malformed macro library documents.
    """

    @classmethod
    def from_yaml_error(cls, error: MarkedYAMLError) -> 'Self':
        """Create a configuration error from a YAML parsing failure.

        Args:
            error: Exception raised by the YAML parser.

        Returns:
            ConfigurationError preserving the YAML error position.
        """
        error_context = ErrorContext(error=error)
        if mark := error.problem_mark:
            error_context.update(
                filename=mark.name,
                line_num=mark.line,
                column_num=mark.column,
            )

        message = 'Invalid YAML'
        if error.problem:
            message += f'{linesep}{LOCATION_INDENT}{error.problem}'

        return cls(message, context=error_context)

    @classmethod
    def from_pydantic_error(cls, error: 'ValidationError', *,
                            data: Any = None,  # noqa: ANN401
                            filename: str | None = None) -> 'Self':
        """Create a configuration error from a validation failure.

        The first reported validation issue becomes the message; the
        offending document is attached as the snippet element.

        Args:
            error: ValidationError raised by Pydantic.
            data: Document that failed validation.
            filename: Name of the source the document was read from.

        Returns:
            ConfigurationError representing the validation failure.
        """
        error_context = ErrorContext(
            filename=filename,
            error=error,
            element=data,
        )

        for item in error.errors(include_url=False, include_input=False):
            location = '.'.join(str(part) for part in item['loc'])
            if location:
                return cls(f'{location}: {item["msg"]}', context=error_context)
            return cls(item['msg'], context=error_context)

        return cls('Validation error', context=error_context)


class UnsupportedOperationError(MacroError):
    """Error raised when an operation is not available in the current mode.

    Raised, for example, when a loop is requested on a scripting-mode
    macro or an unknown operation is dispatched to a capability.
    """


class ParseError(MacroError):
    """Error raised for malformed DSL text.

    Carries the zero-based line number of the malformed line in its
    context.
    """

    @property
    def line_num(self) -> int | None:
        """Return the zero-based line number of the malformed line."""
        if not self.context:
            return None

        return self.context.get('line_num')


class ScriptInitError(MacroError):
    """Error raised when the interpreter cannot produce an entrypoint.

    Includes syntax errors in the macro source and a missing or invalid
    entrypoint coroutine.
    """


class ScriptRuntimeError(MacroError):
    """Error raised while a scripting-mode macro is running.

    Covers non-string yields, interpolation failures, missing modules
    and any exception escaping user code.
    """


class ModuleNotFound(ScriptRuntimeError, ImportError):  # noqa: N818
    """Error raised when no module resolver matches a requested name.

    The message enumerates every searched directory to make resolver
    misconfiguration diagnosable. Macros can catch it as `ImportError`.
    """

    def __init__(self, name: str, searched: tuple[str, ...], *,
                 context: ErrorContext | None = None) -> None:
        """Initialize a module resolution error.

        Args:
            name: Requested module name.
            searched: Search directories that were tried, in order.
            context: Optional error context.
        """
        self.searched = searched

        if searched:
            paths = f'{linesep}  '.join(searched)
            message = f'Module {name!r} not found, paths searched:{linesep}  {paths}'
        else:
            message = f'Module {name!r} not found (no module search paths configured)'

        super().__init__(message, context=context)

        # `ImportError.__init__` resets `name`
        self.name = name
