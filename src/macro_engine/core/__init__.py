"""Core engine runtime.

This package holds the pieces the host interacts with while a macro
runs:

- the command parser interface and its reference implementation;
- the craft-loop rewrite of native macro bodies;
- the step cursor and the `ActiveMacro` execution surface;
- capability registration and entry-point discovery.
"""

from .active import ActiveMacro
from .craftloop import CraftLoop, transform
from .cursor import StepCursor
from .loader import CapabilitiesLoaderMixin
from .parser import CommandParser, MacroParser

__all__ = (
    'ActiveMacro',
    'CapabilitiesLoaderMixin',
    'CommandParser',
    'CraftLoop',
    'MacroParser',
    'StepCursor',
    'transform',
)
