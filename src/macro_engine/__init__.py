"""Steppable macro execution engine.

The `macro_engine` package turns a stored macro into an ordered sequence
of executable commands that a host loop consumes one at a time.

Key features:
- native macros written in a line-oriented command DSL;
- scripting-mode macros written in Python that `yield` DSL lines;
- craft-loop rewriting of native macros with a template or fixed steps;
- host capabilities, module resolution and string interpolation for
  scripting-mode macros.

The engine executes nothing itself: command implementations, UI and
macro persistence belong to the host.
"""

from macro_engine.core import ActiveMacro, MacroParser
from macro_engine.schema import Language, Macro, MacroCommand
from macro_engine.settings import EngineSettings

__all__ = (
    'ActiveMacro',
    'EngineSettings',
    'Language',
    'Macro',
    'MacroCommand',
    'MacroParser',
)
