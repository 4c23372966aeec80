"""Stored macro definitions.

A macro is owned by a script store; the engine only ever works with an
immutable snapshot of it.
"""

from enum import StrEnum
from re import compile as regexp

from pydantic import Field

from macro_engine.models import SchemaModel
from macro_engine.names import MacroName  # noqa: TC001

#: Any of the three newline conventions.
NEWLINES = regexp(r'\r\n|\r|\n')


class Language(StrEnum):
    """Language a macro is written in."""

    #: Line-oriented command DSL.
    NATIVE = 'native'
    #: Embedded scripting language yielding DSL lines.
    PYTHON = 'python'


class Macro(SchemaModel):
    """Snapshot of a stored macro."""

    name: MacroName

    contents: str = Field(
        default='',
        title='Macro source',
        description='Source text of the macro.',
    )

    language: Language = Field(
        default=Language.NATIVE,
        title='Language',
        description='Whether the source is DSL text or a scripting-mode macro.',
    )

    craft_loop: bool = Field(
        default=False,
        title='Craft loop',
        description='Wrap the macro body into a repeated crafting cycle.',
    )

    craft_loop_count: int = Field(
        default=0,
        ge=-1,
        title='Craft-loop count',
        description=(
            'Number of repetitions: 0 runs the body once as-is, '
            '-1 repeats without bound.'
        ),
    )

    @property
    def lines(self) -> list[str]:
        """Source lines split on any newline convention."""
        return NEWLINES.split(self.contents)
