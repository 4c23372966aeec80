"""Module resolution for scripting-mode macros.

`require("name")` and `import name` inside a macro are answered by an
ordered, per-session list of resolvers. The first resolver that finds the
name wins:

1. preloaded standard library modules;
2. absolute file paths;
3. configured search directories, in registration order;
4. other stored macros, looked up by name with the `.macro` suffix
   stripped.

Names ending in `.macro` never touch the filesystem.
"""

from importlib import import_module
from logging import getLogger
from pathlib import Path
from types import ModuleType  # noqa: TC003
from typing import TYPE_CHECKING, Protocol

from pydantic import Field

from macro_engine.errors import ModuleNotFound
from macro_engine.models import SchemaModel

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from macro_engine.settings import EngineSettings
    from macro_engine.store import MacroStore

#: Reserved suffix forcing resolution from the macro store.
MACRO_SUFFIX = '.macro'

logger = getLogger(__name__)


class ModuleSource(SchemaModel):
    """Result of a successful module lookup.

    Exactly one of `source` (text still to be compiled) and `module`
    (an already initialized module) is set.
    """

    name: str = Field(title='Requested module name')
    chunkname: str = Field(title='Name the module code is compiled with')
    origin: str | None = Field(default=None, title='File path the source was read from')
    source: str | None = Field(default=None, title='Module source text')
    module: ModuleType | None = Field(default=None, title='Initialized module')


class ModuleResolver(Protocol):
    """Single strategy of the module finder."""

    #: Directories reported when resolution fails.
    paths: tuple[str, ...]

    def find(self, name: str) -> ModuleSource | None:
        """Return the module source for `name`, or `None`."""
        ...  # pragma: no cover


class PreloadResolver:
    """Resolver for whitelisted standard library modules."""

    paths: tuple[str, ...] = ()

    def __init__(self, modules: 'Iterable[str]') -> None:
        self.modules = frozenset(modules)

    def find(self, name: str) -> ModuleSource | None:
        if name not in self.modules:
            return None

        return ModuleSource(
            name=name,
            chunkname=f'preload["{name}"]',
            module=import_module(name),
        )


def _read_file(name: str, path: Path) -> ModuleSource:
    return ModuleSource(
        name=name,
        chunkname=f'file["{path}"]',
        origin=str(path),
        source=path.read_text(encoding='utf-8'),
    )


class AbsolutePathResolver:
    """Resolver for module names that are absolute file paths."""

    paths: tuple[str, ...] = ()

    def find(self, name: str) -> ModuleSource | None:
        if name.endswith(MACRO_SUFFIX):
            return None

        path = Path(name)
        if not path.is_absolute():
            return None

        for candidate in (path, path.with_name(f'{path.name}.py')):
            if candidate.is_file():
                return _read_file(name, candidate)

        return None


class SearchPathResolver:
    """Resolver searching configured directories in order.

    Each directory is tried with the file names `name`, `name.py` and,
    for dotted names, `a/b.py`.
    """

    def __init__(self, paths: 'Iterable[str]') -> None:
        self.paths = tuple(paths)

    @staticmethod
    def filenames(name: str) -> tuple[str, ...]:
        """Return the candidate file names for a module name."""
        candidates = [name, f'{name}.py']
        if '.' in name and not name.endswith('.py'):
            candidates.append(f'{name.replace(".", "/")}.py')

        return tuple(dict.fromkeys(candidates))

    def find(self, name: str) -> ModuleSource | None:
        if name.endswith(MACRO_SUFFIX):
            return None

        for directory in self.paths:
            for filename in self.filenames(name):
                candidate = Path(directory) / filename
                if candidate.is_file():
                    return _read_file(name, candidate)

        return None


class MacroStoreResolver:
    """Resolver treating other stored macros as modules."""

    paths: tuple[str, ...] = ()

    def __init__(self, store: 'MacroStore | None') -> None:
        self.store = store

    def find(self, name: str) -> ModuleSource | None:
        if self.store is None:
            return None

        macro = name.removesuffix(MACRO_SUFFIX)
        text = self.store.get_macro_text(macro)
        if text is None:
            return None

        return ModuleSource(
            name=name,
            chunkname=f'macro["{macro}"]',
            source=text,
        )


class ModuleFinder:
    """Ordered, immutable chain of module resolvers."""

    def __init__(self, resolvers: 'Sequence[ModuleResolver]') -> None:
        self.resolvers: tuple[ModuleResolver, ...] = tuple(resolvers)

    @classmethod
    def default(cls, settings: 'EngineSettings',
                store: 'MacroStore | None' = None) -> 'ModuleFinder':
        """Build the standard resolver chain from engine settings."""
        return cls((
            PreloadResolver(settings.preloaded_modules),
            AbsolutePathResolver(),
            SearchPathResolver(settings.extra_module_search_paths),
            MacroStoreResolver(store),
        ))

    @property
    def paths(self) -> tuple[str, ...]:
        """Search directories of every resolver, in order."""
        return tuple(
            path
            for resolver in self.resolvers
            for path in resolver.paths
        )

    def find(self, name: str) -> ModuleSource:
        """Resolve a module name.

        Raises:
            ModuleNotFound: If no resolver matches. The error lists
                every searched directory.
        """
        for resolver in self.resolvers:
            if found := resolver.find(name):
                logger.debug('Resolved module %r as %s', name, found.chunkname)
                return found

        raise ModuleNotFound(name, self.paths)
