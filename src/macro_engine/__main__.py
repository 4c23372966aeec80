"""CLI utilities for dry-running macros.

Commands never execute anything; they print the commands a host would
receive. Engine settings are read from `MACRO_*` environment variables.
"""

from logging import DEBUG, basicConfig
from pathlib import Path
from typing import TYPE_CHECKING

from click import ClickException, IntRange, argument, echo, group, option
from click import Path as PathParam

from macro_engine.core import ActiveMacro, CraftLoop, MacroParser
from macro_engine.errors import MacroError
from macro_engine.schema import Language, Macro
from macro_engine.scripting import ScriptingBridge
from macro_engine.settings import EngineSettings
from macro_engine.store import MemoryMacroStore

if TYPE_CHECKING:
    from collections.abc import Iterator

    from macro_engine.schema import MacroCommand

#: Default number of commands printed by `steps`.
DEFAULT_LIMIT = 1000

InputFilepath = PathParam(
    dir_okay=False,
    exists=True,
    readable=True,
    path_type=Path,
)


@group(help='Command-line utilities for the macro engine.')
@option('-v', '--verbose', is_flag=True, help='Enable debug logging.')
def cli(verbose: bool) -> None:
    """Root CLI group for macro engine tools."""
    if verbose:
        basicConfig(level=DEBUG, format='%(levelname)s %(name)s: %(message)s')


def _iter_steps(active: ActiveMacro, limit: int) -> 'Iterator[MacroCommand]':
    """Drive an active macro like a host loop would."""
    produced = 0
    while produced < limit:
        step = active.current_step()
        if active.finished:
            return

        if step is not None:
            produced += 1
            yield step

        active.advance()


@cli.command(
    name='steps',
    help='Print the commands a macro materializes, without executing them.',
)
@option('--python', 'scripting', is_flag=True, help='Treat the file as a scripting-mode macro.')
@option(
    '--craft-loop', 'craft_loop',
    type=IntRange(min=-1),
    default=None,
    help='Enable craft looping with the given repeat count.',
)
@option(
    '--library',
    type=InputFilepath,
    default=None,
    help='YAML macro library available to `require`.',
)
@option(
    '--limit',
    type=IntRange(min=1),
    default=DEFAULT_LIMIT,
    show_default=True,
    help='Maximum number of commands to print.',
)
@argument('filename', type=InputFilepath)
def print_steps(filename: Path, scripting: bool, craft_loop: int | None,
                library: Path | None, limit: int) -> None:
    """Dry-run a macro file.

    Args:
        filename: Macro source file.
        scripting: Whether the file is a scripting-mode macro.
        craft_loop: Craft-loop repeat count, if looping is requested.
        library: Optional YAML macro library.
        limit: Maximum number of commands to print.
    """
    try:
        store = None
        if library is not None:
            with library.open('rt') as content:
                store = MemoryMacroStore.from_yaml(content, filename=library.as_posix())

        macro = Macro(
            name=filename.stem,
            contents=filename.read_text(),
            language=Language.PYTHON if scripting else Language.NATIVE,
            craft_loop=craft_loop is not None,
            craft_loop_count=craft_loop or 0,
        )

        with ActiveMacro(macro, MacroParser(macro.name), EngineSettings(), store=store) as active:
            for step in _iter_steps(active, limit):
                echo(step)

    except MacroError as error:
        raise ClickException(str(error)) from error


@cli.command(
    name='transform',
    help='Print the craft-loop rewrite of a native macro.',
)
@option(
    '-c', '--count',
    type=IntRange(min=-1),
    required=True,
    help='Repeat count: 0 runs once, -1 repeats without bound.',
)
@argument('filename', type=InputFilepath)
def print_transform(filename: Path, count: int) -> None:
    """Rewrite a macro body for craft looping.

    Args:
        filename: Macro source file.
        count: Craft-loop repeat count.
    """
    try:
        echo(CraftLoop(EngineSettings()).transform(filename.read_text(), True, count))

    except MacroError as error:
        raise ClickException(str(error)) from error


@cli.command(
    name='functions',
    help='List the functions available to scripting-mode macros.',
)
def print_functions() -> None:
    """Print installed capabilities and their operations."""
    bridge = ScriptingBridge('', settings=EngineSettings(), discover=True)

    for name, operations in bridge.functions.items():
        echo(f'{name}:')
        for operation in operations:
            echo(f'  {operation}')


if __name__ == '__main__':
    cli()
