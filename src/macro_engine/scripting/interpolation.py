"""String interpolation helper of scripting-mode macros.

`f("/echo {count} left")` replaces every balanced `{...}` fragment with
the string value of the enclosed expression. Names are resolved against
the locals of the calling macro frames, innermost first, and then against
the interpreter globals.
"""

import sys
from typing import TYPE_CHECKING, Any

from macro_engine.builtins.lookups import ExpressionLookup

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping
    from types import FrameType


def find_blocks(text: str) -> 'Iterator[tuple[int, int]]':
    """Yield `(start, end)` spans of balanced brace blocks.

    `end` is the index of the closing brace. An opening brace without
    a matching closing brace is skipped.
    """
    index = 0
    while index < len(text):
        if text[index] == '{':
            depth = 0
            for end in range(index, len(text)):
                if text[end] == '{':
                    depth += 1
                elif text[end] == '}':
                    depth -= 1
                    if depth == 0:
                        yield index, end
                        index = end
                        break
        index += 1


def interpolate(text: str, evaluate: 'Callable[[str], Any]') -> str:
    """Replace every balanced brace block with its evaluated value.

    Args:
        text: Template string.
        evaluate: Callable evaluating the code inside one block.

    Returns:
        The interpolated string.
    """
    parts = []
    position = 0

    for start, end in find_blocks(text):
        parts.append(text[position:start])
        parts.append(str(evaluate(text[start + 1:end])))
        position = end + 1

    parts.append(text[position:])

    return ''.join(parts)


class Interpolator:
    """The `f` helper bound to one interpreter namespace."""

    def __init__(self, namespace: dict[str, Any], chunknames: set[str]) -> None:
        """Initialize the helper.

        Args:
            namespace: Globals used when no local scope binds a name.
            chunknames: Filenames of code compiled by the bridge. Only
                frames running such code contribute local scopes.
        """
        self.namespace = namespace
        self.chunknames = chunknames

    def __call__(self, text: str) -> str:
        """Interpolate `text` in the scope of the caller."""
        scopes = self.collect_scopes(sys._getframe(1))  # noqa: SLF001

        return interpolate(
            str(text),
            lambda code: ExpressionLookup(code)(self.namespace, scopes),
        )

    def collect_scopes(self, frame: 'FrameType | None') -> list['Mapping[str, Any]']:
        """Collect local scopes of macro frames, innermost first."""
        scopes: list[Mapping[str, Any]] = []

        while frame is not None:
            if frame.f_code.co_filename in self.chunknames and frame.f_locals is not self.namespace:
                scopes.append(dict(frame.f_locals))
            frame = frame.f_back

        return scopes
