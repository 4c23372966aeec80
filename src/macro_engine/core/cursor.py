"""Position cursor over an ordered command list."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from macro_engine.schema import MacroCommand

#: Cursor value meaning "looped to start": the next advance lands on 0.
REWOUND = -1


class StepCursor:
    """Ordered command list with a mutable position.

    The index is either `REWOUND`, a valid position, or past the end.
    Advancing is never bounds checked so the host can detect completion
    by reading `None` from `current`.
    """

    def __init__(self, steps: 'Iterable[MacroCommand]' = ()) -> None:
        """Initialize the cursor at the first position."""
        self.steps: list[MacroCommand] = list(steps)
        self.index = 0

    def __len__(self) -> int:
        return len(self.steps)

    def current(self) -> 'MacroCommand | None':
        """Return the command at the cursor, or `None` if out of bounds."""
        if 0 <= self.index < len(self.steps):
            return self.steps[self.index]

        return None

    def advance(self) -> None:
        """Move to the next position."""
        self.index += 1

    def rewind(self) -> None:
        """Move before the first position."""
        self.index = REWOUND

    def append(self, step: 'MacroCommand') -> None:
        """Append a materialized command without moving the cursor."""
        self.steps.append(step)

    @property
    def exhausted(self) -> bool:
        """Whether the cursor is past the last command."""
        return self.index >= len(self.steps)
