"""Parsed command units.

A command is an opaque, already parsed executable unit. Every field is
derived from its source line, so two commands are equal exactly when
their source lines are equal.
"""

from pydantic import Field

from macro_engine.models import SchemaModel


class MacroCommand(SchemaModel):
    """Single executable command materialized from a DSL line."""

    text: str = Field(
        title='Source line',
        description='Stripped source line the command was parsed from.',
    )

    name: str | None = Field(
        default=None,
        title='Command name',
        description='Command name without the leading slash; `None` for native chat text.',
    )

    arguments: tuple[str, ...] = Field(
        default=(),
        title='Arguments',
        description='Positional arguments with quoting removed.',
    )

    modifiers: tuple[tuple[str, str | None], ...] = Field(
        default=(),
        title='Modifiers',
        description='Pairs of modifier name and optional value, in source order.',
    )

    def __str__(self) -> str:
        """Return the source line."""
        return self.text

    def get_modifier(self, name: str, default: str | None = None) -> str | None:
        """Return the value of a modifier, or `default` if it is absent.

        Flag modifiers such as `<echo>` have an empty string value.
        """
        for key, value in self.modifiers:
            if key == name:
                return '' if value is None else value

        return default
