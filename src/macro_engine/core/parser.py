"""Command parser interface and reference line parser.

The engine consumes a parser only through `CommandParser`: a full-text
`parse` producing the ordered command list of a native macro, and a total
single-line `parse_line` used for lines yielded by scripting-mode macros.

`MacroParser` is a small reference implementation of that interface:

- blank lines and lines starting with `#` or `//` produce no command;
- `/name arguments... <modifier> <modifier.value>` produces a named
  command with shell-style quoted arguments;
- any other text is a native chat command (`name` is `None`).
"""

from shlex import shlex
from typing import TYPE_CHECKING, Protocol

from macro_engine.errors import ErrorContext, ParseError
from macro_engine.names import COMMAND_PATTERN, MODIFIER_PATTERN
from macro_engine.schema import MacroCommand
from macro_engine.schema.macros import NEWLINES

if TYPE_CHECKING:
    from collections.abc import Iterator

COMMENT_PREFIXES = ('#', '//')


class CommandParser(Protocol):
    """Interface of the DSL parser consumed by the engine."""

    def parse(self, text: str) -> list[MacroCommand]:
        """Parse full macro text into an ordered command list."""
        ...  # pragma: no cover

    def parse_line(self, text: str) -> MacroCommand | None:
        """Parse a single line; never raises."""
        ...  # pragma: no cover


class MacroParser:
    """Reference line-oriented DSL parser."""

    def __init__(self, name: str | None = None) -> None:
        """Initialize the parser.

        Args:
            name: Optional macro name reported in parse errors.
        """
        self.name = name

    def parse(self, text: str) -> list[MacroCommand]:
        """Parse macro text into an ordered list of commands.

        Args:
            text: Full macro source.

        Returns:
            Commands in source order; skipped lines produce nothing.

        Raises:
            ParseError: If a line is malformed. The error context
                carries the zero-based line number and the line.
        """
        return list(self._iter_commands(text))

    def parse_line(self, text: str) -> MacroCommand | None:
        """Parse a single line.

        Args:
            text: One DSL line.

        Returns:
            The parsed command, or `None` for blank, comment and
            malformed lines.
        """
        try:
            return self.parse_command(text)

        except ValueError:
            return None

    def _iter_commands(self, text: str) -> 'Iterator[MacroCommand]':
        for line_num, line in enumerate(NEWLINES.split(text)):
            try:
                command = self.parse_command(line)

            except ValueError as base:
                raise ParseError(f'Malformed command: {base}', context=ErrorContext(
                    filename=self.name,
                    line_num=line_num,
                    element=line,
                    error=base,
                )) from base

            if command is not None:
                yield command

    @staticmethod
    def parse_command(line: str) -> MacroCommand | None:
        """Parse one line, raising on malformed input.

        Args:
            line: Source line.

        Returns:
            The parsed command, or `None` for blank and comment lines.

        Raises:
            ValueError: If the line has an invalid command name or
                unbalanced quotes.
        """
        text = line.strip()
        if not text or text.startswith(COMMENT_PREFIXES):
            return None

        if not text.startswith('/'):
            return MacroCommand(text=text)

        if not (match := COMMAND_PATTERN.match(text)):
            raise ValueError(f'invalid command name in {text!r}')

        rest = match.group('rest') or ''
        modifiers = tuple(
            (item.group('name').lower(), item.group('value'))
            for item in MODIFIER_PATTERN.finditer(rest)
        )

        return MacroCommand(
            text=text,
            name=match.group('name').lower(),
            arguments=split_arguments(MODIFIER_PATTERN.sub('', rest)),
            modifiers=modifiers,
        )


def split_arguments(text: str) -> tuple[str, ...]:
    """Split command arguments on whitespace honoring double quotes.

    Single quotes are ordinary characters so chat text such as `don't`
    stays intact.

    Raises:
        ValueError: If a double quote is not closed.
    """
    lexer = shlex(text, posix=True)
    lexer.whitespace_split = True
    lexer.quotes = '"'
    lexer.escape = ''
    lexer.commenters = ''

    return tuple(lexer)
