"""Restricted builtins for scripting-mode macros.

Scripts run with a whitelist of builtins. Imports are routed through the
bridge's module finder instead of the interpreter's import system, and
file, process and introspection builtins are not available.
"""

import builtins
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

SAFE_BUILTINS = (
    'abs', 'all', 'any', 'ascii', 'bin', 'bool', 'bytes', 'callable', 'chr',
    'dict', 'divmod', 'enumerate', 'filter', 'float', 'format', 'frozenset',
    'getattr', 'hasattr', 'hash', 'hex', 'int', 'isinstance', 'issubclass',
    'iter', 'len', 'list', 'map', 'max', 'min', 'next', 'oct', 'ord', 'pow',
    'range', 'repr', 'reversed', 'round', 'set', 'slice', 'sorted', 'str',
    'sum', 'tuple', 'type', 'zip',
    '__build_class__', 'classmethod', 'object', 'property', 'staticmethod',
    'super',
    'ArithmeticError', 'AssertionError', 'AttributeError', 'Exception',
    'ImportError', 'IndexError', 'KeyError', 'LookupError', 'NameError', 'NotImplementedError',
    'RuntimeError', 'StopIteration', 'TypeError', 'ValueError',
    'ZeroDivisionError',
)


def make_builtins(importer: 'Callable[..., Any]') -> dict[str, Any]:
    """Build the builtins mapping of a script namespace.

    Args:
        importer: Replacement for `__import__` resolving module names
            through the bridge.

    Returns:
        A fresh mapping; scripts cannot affect other namespaces by
        mutating it.
    """
    namespace = {
        name: getattr(builtins, name)
        for name in SAFE_BUILTINS
    }
    namespace['__import__'] = importer

    return namespace
