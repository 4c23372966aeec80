"""Identifier patterns and validation rules.

This module defines the name patterns relied upon by the reference
command parser and by the capability registry.
"""

from re import ASCII
from re import compile as regexp
from typing import Annotated

from pydantic import Field

#: Base pattern for script-visible identifiers.
_NAME_PATTERN = r'[a-zA-Z_]\w*'

#: Compiled pattern for capability operation names.
#: Operations are bound as script functions, so they must be valid identifiers.
OPERATION_PATTERN = regexp(rf'^{_NAME_PATTERN}$', flags=ASCII)

#: Compiled pattern for DSL command names ("ac", "waitaddon", "send").
COMMAND_PATTERN = regexp(r'^/(?P<name>[a-zA-Z][\w-]*)(?:\s+(?P<rest>.*))?$', flags=ASCII)

#: Compiled pattern for command modifiers ("<wait.3>", "<echo>", "<maxwait.10>").
MODIFIER_PATTERN = regexp(r'<(?P<name>[a-zA-Z]\w*)(?:\.(?P<value>[^<>\s]*))?>', flags=ASCII)


MacroName = Annotated[
    str, Field(
        min_length=1,
        title='Macro name',
        description=(
            'Name of a stored macro. Names are unique within a store and '
            'are used to require one macro from another.'
        ),
        examples=[
            'MyMacro',
            'Crafting helpers',
        ],
    ),
]

Operation = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Operation name',
        description=(
            'Name of a capability operation. Operations are bound as '
            'functions in the scripting namespace and must be valid '
            'identifiers.'
        ),
        examples=[
            'GetCharacterCondition',
            'GetItemCount',
        ],
    ),
]
