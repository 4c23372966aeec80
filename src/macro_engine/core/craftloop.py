"""Craft-loop rewriting of native macro bodies.

A craft-looped macro repeats its body a bounded or unbounded number of
times. The rewrite is a pure text transformation applied before the body
is parsed, using one of two strategies:

- the template strategy substitutes the body and the repeat count into
  a user supplied template;
- the fixed-step strategy synthesizes a gate step, the click/wait
  sequence that opens the synthesis window, and a trailing loop step.
"""

from typing import TYPE_CHECKING

from macro_engine.errors import ConfigurationError
from macro_engine.settings import COUNT_PLACEHOLDER, MACRO_PLACEHOLDER, EngineSettings

if TYPE_CHECKING:
    from macro_engine.schema import Macro

#: Count substituted into templates for unbounded loops.
UNBOUNDED_COUNT = 999_999


class CraftLoop:
    """Craft-loop transformer bound to engine settings."""

    def __init__(self, settings: EngineSettings | None = None) -> None:
        """Initialize the transformer.

        Args:
            settings: Engine settings; defaults are used if omitted.
        """
        self.settings = settings or EngineSettings()

    def transform(self, body: str, loop_enabled: bool, repeat_count: int) -> str:
        """Rewrite a macro body for craft looping.

        Args:
            body: Macro source text.
            loop_enabled: Whether craft looping is requested.
            repeat_count: 0 for a single run, -1 for unbounded
                repetition, N > 0 for exactly N runs.

        Returns:
            The rewritten body, or `body` itself when looping is off.

        Raises:
            ConfigurationError: If the template strategy is enabled and
                the template lacks the macro placeholder.
        """
        if not loop_enabled:
            return body

        if self.settings.craft_loop_template_enabled:
            return self.apply_template(body, repeat_count)

        return self.apply_steps(body, repeat_count)

    def transform_macro(self, macro: 'Macro') -> str:
        """Rewrite the contents of a macro using its own loop options."""
        return self.transform(macro.contents, macro.craft_loop, macro.craft_loop_count)

    def apply_template(self, body: str, repeat_count: int) -> str:
        """Rewrite a body with the configured craft-loop template."""
        template = self.settings.craft_loop_template
        if MACRO_PLACEHOLDER not in template:
            raise ConfigurationError(
                f'CraftLoop template does not contain the {MACRO_PLACEHOLDER} placeholder',
            )

        if repeat_count == 0:
            return body

        if repeat_count == -1:
            repeat_count = UNBOUNDED_COUNT

        return (
            template
            .replace(MACRO_PLACEHOLDER, body)
            .replace(COUNT_PLACEHOLDER, str(repeat_count))
            .strip()
        )

    def apply_steps(self, body: str, repeat_count: int) -> str:
        """Rewrite a body by synthesizing the loop steps around it."""
        gate, clicks, loop = self.build_steps(repeat_count)

        if self.settings.craft_loop_from_recipe_note:
            if repeat_count == -1:
                lines = [clicks, body, loop]
            elif repeat_count == 0:
                lines = [body]
            elif repeat_count == 1:
                lines = [clicks, body]
            else:
                lines = [gate, clicks, body, loop]
        elif repeat_count == -1:
            lines = [body, clicks, loop]
        elif repeat_count in (0, 1):
            lines = [body]
        else:
            lines = [body, gate, clicks, loop]

        return '\n'.join(lines).strip()

    def build_steps(self, repeat_count: int) -> tuple[str, str, str]:
        """Build the synthesized gate, click/wait and loop steps.

        Returns:
            A tuple of the gate step, the three-line click/wait
            sequence and the loop step.
        """
        max_wait = self.settings.craft_loop_max_wait
        max_wait_mod = f' <maxwait.{max_wait}>' if max_wait > 0 else ''
        echo_mod = ' <echo>' if self.settings.craft_loop_echo else ''

        clicks = '\n'.join((
            f'/waitaddon "RecipeNote"{max_wait_mod}',
            '/click "RecipeNote Synthesize"',
            f'/waitaddon "Synthesis"{max_wait_mod}',
        ))

        return f'/gate {repeat_count - 1}{echo_mod}', clicks, f'/loop{echo_mod}'


def transform(body: str, loop_enabled: bool, repeat_count: int,
              settings: EngineSettings | None = None) -> str:
    """Rewrite a macro body for craft looping.

    Shortcut for `CraftLoop(settings).transform(...)`.
    """
    return CraftLoop(settings).transform(body, loop_enabled, repeat_count)
