"""Data model of stored macros and parsed commands.

Defines immutable Pydantic models describing a stored macro snapshot
and the opaque command units materialized from its text.
"""

from .commands import MacroCommand
from .macros import Language, Macro

__all__ = (
    'Language',
    'Macro',
    'MacroCommand',
)
