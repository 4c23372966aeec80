"""Scripting-mode macros.

A scripting-mode macro is Python source whose body becomes a generator:
every `yield` hands one DSL line to the engine. This package wraps the
source into a resumable entrypoint, resolves the modules it requires and
provides the `f` interpolation helper.
"""

from .bridge import ScriptingBridge
from .coroutine import CoroutineState, EntrypointCoroutine
from .resolvers import (
    AbsolutePathResolver,
    MacroStoreResolver,
    ModuleFinder,
    ModuleResolver,
    ModuleSource,
    PreloadResolver,
    SearchPathResolver,
)

__all__ = (
    'AbsolutePathResolver',
    'CoroutineState',
    'EntrypointCoroutine',
    'MacroStoreResolver',
    'ModuleFinder',
    'ModuleResolver',
    'ModuleSource',
    'PreloadResolver',
    'ScriptingBridge',
    'SearchPathResolver',
)
