"""Expression lookups used by string interpolation.

An expression lookup compiles a Python expression once and evaluates it
later against a namespace and a chain of lexical scopes.
"""

from collections import ChainMap
from typing import TYPE_CHECKING, Any

from macro_engine.errors import ScriptRuntimeError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


class ExpressionLookup:
    """Deferred resolver based on a Python expression.

    The expression is evaluated with `eval` against the interpreter
    globals overlaid with the provided scopes, so names bound in a scope
    win and stay visible to nested comprehensions and lambdas.

    Notes:
        - Only expressions are supported (no statements).
        - The globals carry the sandboxed builtins of the script, so
          the expression has exactly the power of the calling script.
    """

    def __init__(self, body: str) -> None:
        """Compile an expression.

        Args:
            body: Expression source.

        Raises:
            ScriptRuntimeError: If the expression is syntactically
                invalid.
        """
        self.body = body

        try:
            self.code = compile(body.strip(), filename=f'expression `{body}`', mode='eval')
        except SyntaxError as error:
            raise ScriptRuntimeError(f'Invalid syntax in expression `{body}`') from error

    def __call__(self, globals_: dict[str, Any],
                 scopes: 'Sequence[Mapping[str, Any]]' = ()) -> Any:  # noqa: ANN401
        """Evaluate the expression."""
        return self.resolve(globals_, scopes)

    def resolve(self, globals_: dict[str, Any],
                scopes: 'Sequence[Mapping[str, Any]]' = ()) -> Any:  # noqa: ANN401
        """Evaluate the compiled expression.

        Args:
            globals_: Interpreter globals, used when no scope binds a name.
            scopes: Local scopes, innermost first.

        Returns:
            Result of the evaluated expression.

        Raises:
            ScriptRuntimeError: If evaluation fails.
        """
        try:
            return eval(self.code, {**globals_, **ChainMap(*scopes)})  # noqa: S307

        except Exception as error:
            raise ScriptRuntimeError(f'Error during evaluation of expression `{self.body}`: {error}') from error
