"""Runtime settings of the engine.

Settings are resolved once (from arguments or `MACRO_*` environment
variables) and passed explicitly into the active macro, the craft-loop
transformer and the scripting bridge.
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from macro_engine.models import SettingsModel

#: Placeholder replaced by the macro body in craft-loop templates.
MACRO_PLACEHOLDER = '{{macro}}'
#: Placeholder replaced by the repeat count in craft-loop templates.
COUNT_PLACEHOLDER = '{{count}}'

DEFAULT_CRAFT_LOOP_TEMPLATE = '\n'.join((
    '/craft {{count}}',
    '/waitaddon "RecipeNote" <maxwait.5>',
    '/click "RecipeNote Synthesize"',
    '/waitaddon "Synthesis" <maxwait.5>',
    '{{macro}}',
    '/loop',
))

DEFAULT_PRELOADED_MODULES = (
    'collections',
    'datetime',
    'functools',
    'itertools',
    'json',
    'math',
    'random',
    're',
    'string',
    'time',
)


class EngineSettings(SettingsModel):
    """Engine configuration.

    Every option may be given through the environment with the `MACRO_`
    prefix, for example `MACRO_CRAFT_LOOP_ECHO=true`.
    """

    model_config = SettingsConfigDict(
        env_prefix='MACRO_',
        frozen=True,
        extra='ignore',
    )

    craft_loop_template_enabled: bool = Field(
        default=False,
        title='Use craft-loop template',
        description=(
            'Rewrite craft-looped macros with the user template instead '
            'of synthesizing fixed steps.'
        ),
    )

    craft_loop_template: str = Field(
        default=DEFAULT_CRAFT_LOOP_TEMPLATE,
        title='Craft-loop template',
        description=(
            f'Template wrapping a craft-looped macro. Must contain '
            f'{MACRO_PLACEHOLDER}; {COUNT_PLACEHOLDER} is optional.'
        ),
    )

    craft_loop_max_wait: int = Field(
        default=0,
        ge=0,
        title='Craft-loop maximum wait',
        description='Seconds for the <maxwait> modifier of synthesized waits; 0 disables it.',
    )

    craft_loop_echo: bool = Field(
        default=False,
        title='Craft-loop echo',
        description='Append <echo> to the synthesized gate and loop steps.',
    )

    craft_loop_from_recipe_note: bool = Field(
        default=True,
        title='Craft-loop starts in the recipe note',
        description=(
            'When enabled the loop expects the recipe note to be open, '
            'otherwise the synthesis window.'
        ),
    )

    extra_module_search_paths: tuple[str, ...] = Field(
        default=(),
        title='Module search paths',
        description='Directories searched, in order, by `require` in scripting-mode macros.',
    )

    preloaded_modules: tuple[str, ...] = Field(
        default=DEFAULT_PRELOADED_MODULES,
        title='Preloaded modules',
        description='Standard library modules scripting-mode macros may import.',
    )
