"""Bridge between scripting-mode macros and the engine.

The bridge turns macro source into a resumable entrypoint coroutine and
prepares the namespace the macro runs in:

- the `f` interpolation helper and the `require` module loader (also
  used by `import` statements);
- one global function per capability operation, plus one namespace
  object per capability;
- every entry of the host-services registry as a global variable.

Initialization is lazy and happens once, on the first `start` call.
"""

from inspect import isgeneratorfunction
from logging import getLogger
from types import ModuleType
from typing import TYPE_CHECKING, Any

from macro_engine.builtins.capabilities import Internal
from macro_engine.builtins.sandbox import make_builtins
from macro_engine.core.loader import CapabilitiesLoaderMixin
from macro_engine.errors import (
    ErrorContext,
    MacroError,
    ModuleNotFound,
    ScriptInitError,
    ScriptRuntimeError,
)
from macro_engine.schema.macros import NEWLINES
from macro_engine.settings import EngineSettings

from .coroutine import EntrypointCoroutine
from .interpolation import Interpolator
from .resolvers import ModuleFinder

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from macro_engine.extensions import Capability
    from macro_engine.store import MacroStore

    from .resolvers import ModuleResolver

#: Prefix applied to every macro line inside the entrypoint body.
LINE_PREFIX = '    '

#: Global the wrapped source stores the entrypoint coroutine in.
ENTRYPOINT_NAME = '__entrypoint__'

#: Number of synthetic lines preceding the macro source.
ENTRYPOINT_OFFSET = 1

ENTRYPOINT_TEMPLATE = '''def entrypoint():
{body}
    yield from ()

__entrypoint__ = coroutine(entrypoint)
'''

logger = getLogger(__name__)


class ScriptingBridge(CapabilitiesLoaderMixin):
    """Interpreter state of one scripting-mode macro.

    Each bridge exclusively owns its namespace, module cache and
    coroutine; nothing is shared between bridges.
    """

    def __init__(self, source: str, *,  # noqa: PLR0913
                 name: str = '<macro>',
                 settings: EngineSettings | None = None,
                 capabilities: 'Iterable[Capability]' = (),
                 services: 'Mapping[str, Any] | None' = None,
                 store: 'MacroStore | None' = None,
                 resolvers: 'Sequence[ModuleResolver] | None' = None,
                 strict: bool = False,
                 discover: bool = False) -> None:
        """Initialize the bridge.

        Args:
            source: Macro source text.
            name: Macro name, used in chunk names and errors.
            settings: Engine settings; defaults are used if omitted.
            capabilities: Host capabilities exposed to the macro.
            services: Host-services registry exposed as globals.
            store: Macro store backing `require` of other macros.
            resolvers: Module resolver chain replacing the default
                chain built from the settings.
            strict: Whether registration issues raise instead of warn.
            discover: Whether to also load capabilities from entry
                points.

        Raises:
            CapabilityError: If a capability cannot be registered on
                strict mode.
        """
        self.source = source
        self.name = name
        self.settings = settings or EngineSettings()
        self.services = dict(services or {})
        self.store = store
        self.strict_mode = strict

        self.clear_capabilities()
        self.add_capability(Internal(self, store, self.settings.extra_module_search_paths))
        for capability in capabilities:
            self.add_capability(capability)
        if discover:
            self.load_capabilities()

        if resolvers is None:
            self.finder = ModuleFinder.default(self.settings, store)
        else:
            self.finder = ModuleFinder(resolvers)

        self.chunkname = f'macro["{name}"]'
        self.chunknames: set[str] = {self.chunkname}
        self.loaded: dict[str, ModuleType] = {}

        self.namespace: dict[str, Any] | None = None
        self.coroutine: EntrypointCoroutine | None = None
        self.disposed = False

    @staticmethod
    def wrap(source: str) -> str:
        """Wrap macro source into the entrypoint generator function."""
        body = '\n'.join(
            f'{LINE_PREFIX}{line}'
            for line in NEWLINES.split(source)
        )

        return ENTRYPOINT_TEMPLATE.format(body=body)

    def start(self) -> EntrypointCoroutine:
        """Initialize the interpreter and return the entrypoint coroutine.

        Subsequent calls return the same coroutine.

        Raises:
            ScriptInitError: If the macro has invalid syntax, the
                bridge was disposed, or no entrypoint was produced.
        """
        if self.coroutine is not None:
            return self.coroutine

        if self.disposed:
            raise ScriptInitError('Script has been disposed', context=ErrorContext(filename=self.name))

        try:
            code = compile(self.wrap(self.source), self.chunkname, 'exec')

        except SyntaxError as base:
            raise ScriptInitError(f'Invalid script syntax: {base.msg}', context=ErrorContext(
                filename=self.name,
                line_num=max((base.lineno or 1) - 1 - ENTRYPOINT_OFFSET, 0),
                element=(base.text or '').removeprefix(LINE_PREFIX).rstrip() or None,
                error=base,
            )) from base

        namespace = self.populate({'__name__': '__macro__'}, coroutine=self.wrap_entrypoint)

        try:
            exec(code, namespace)  # noqa: S102

        except MacroError:
            raise

        except Exception as base:
            raise ScriptInitError('Could not obtain entrypoint', context=ErrorContext(
                filename=self.name,
                error=base,
            )) from base

        coroutine = namespace.get(ENTRYPOINT_NAME)
        if not isinstance(coroutine, EntrypointCoroutine):
            raise ScriptInitError('Could not obtain entrypoint', context=ErrorContext(filename=self.name))

        logger.debug('Started script %r', self.name)

        self.namespace = namespace
        self.coroutine = coroutine

        return coroutine

    def resume(self) -> tuple[Any, ...]:
        """Run the macro until its next yield.

        Returns:
            A one-element tuple with the yielded value, or an empty
            tuple once the macro has finished.
        """
        return self.start().resume()

    @property
    def finished(self) -> bool:
        """Whether the macro has returned."""
        return self.coroutine is not None and self.coroutine.finished

    def wrap_entrypoint(self, factory: 'Callable[[], Any]') -> EntrypointCoroutine:
        """Wrap the entrypoint function into a coroutine."""
        if not isgeneratorfunction(factory):
            raise ScriptInitError('Could not obtain entrypoint', context=ErrorContext(filename=self.name))

        return EntrypointCoroutine(
            factory,
            name=self.name,
            chunkname=self.chunkname,
            line_offset=ENTRYPOINT_OFFSET,
        )

    def populate(self, namespace: dict[str, Any], **helpers: Any) -> dict[str, Any]:  # noqa: ANN401
        """Install builtins, helpers, functions and services in a namespace.

        Used for the macro itself and for every module it requires.
        Helpers (`f`, `require` and any passed in) always keep their
        names: a capability, operation or service using one of them is
        reported and left out.

        Args:
            namespace: Namespace to fill in-place.
            helpers: Additional helpers of this namespace.

        Returns:
            The same namespace.

        Raises:
            CapabilityError: If a capability, operation or service
                shadows a helper, or a service shadows a script
                function, on strict mode.
        """
        helpers = {
            'f': Interpolator(namespace, self.chunknames),
            'require': self.require,
            **helpers,
        }

        namespace['__builtins__'] = make_builtins(self.import_module)

        for kind, functions in (('Capability', self.namespaces()), ('Operation', self.operations)):
            for name, function in functions.items():
                if name in helpers:
                    if error := self.emit_capability_issue(f'{kind} {name!r} is shadowing a script helper'):
                        raise error
                    continue
                namespace[name] = function

        for name, service in self.services.items():
            if name in helpers:
                if error := self.emit_capability_issue(f'Service {name!r} is shadowing a script helper'):
                    raise error
                continue

            if name in namespace and (error := self.emit_capability_issue(
                f'Service {name!r} is shadowing an existing script global',
            )):
                raise error
            namespace[name] = service

        namespace.update(helpers)

        return namespace

    def require(self, name: str) -> ModuleType:
        """Load a module by name.

        Modules are cached per bridge; a module is cached before its
        body runs so cyclic requires see the partially initialized
        module.

        Args:
            name: Module name, file path, or macro name.

        Returns:
            The initialized module.

        Raises:
            ModuleNotFound: If no resolver matches the name.
            ScriptRuntimeError: If the module body fails.
        """
        if name in self.loaded:
            return self.loaded[name]

        found = self.finder.find(name)
        if found.module is not None:
            self.loaded[name] = found.module
            return found.module

        module = ModuleType(found.name)
        module.__file__ = found.origin or found.chunkname
        self.populate(module.__dict__)

        self.loaded[name] = module
        self.chunknames.add(found.chunkname)

        try:
            exec(compile(found.source or '', found.chunkname, 'exec'), module.__dict__)  # noqa: S102

        except MacroError:
            self.loaded.pop(name, None)
            raise

        except Exception as base:
            self.loaded.pop(name, None)
            raise ScriptRuntimeError(f'Module {name!r} failed to load: {base}', context=ErrorContext(
                filename=found.chunkname,
                line_num=getattr(base, 'lineno', None) and base.lineno - 1,  # type: ignore[attr-defined]
                error=base,
            )) from base

        logger.debug('Loaded module %r from %s', name, found.chunkname)

        return module

    def import_module(self, name: str, globals_: Any = None, locals_: Any = None,  # noqa: ANN401
                      fromlist: Any = (), level: int = 0) -> ModuleType:  # noqa: ANN401
        """Replacement of `__import__` for script namespaces.

        `import a.b` binds `a`, so for dotted names without `fromlist`
        the top-level module is returned, with every submodule reachable
        as an attribute of its parent. Prefixes no resolver matches
        become empty namespace modules.
        """
        if level:
            raise ImportError('Relative imports are not supported in macros')

        module = self.require(name)
        if fromlist or '.' not in name:
            return module

        parts = name.split('.')
        for index in range(len(parts) - 1, 0, -1):
            parent = self.require_package('.'.join(parts[:index]))
            if not hasattr(parent, parts[index]):
                setattr(parent, parts[index], module)
            module = parent

        return module

    def require_package(self, name: str) -> ModuleType:
        """Load a module, or create an empty namespace module if missing."""
        try:
            return self.require(name)

        except ModuleNotFound as error:
            if error.name != name:
                raise
            logger.debug('Created namespace module %r', name)
            package = self.loaded[name] = ModuleType(name)
            return package

    def dispose(self) -> None:
        """Release the coroutine, namespace and module cache.

        Never raises; repeated calls are no-ops.
        """
        if self.disposed:
            return

        self.disposed = True

        coroutine, self.coroutine = self.coroutine, None
        if coroutine is not None:
            try:
                coroutine.close()
            except Exception:
                logger.warning('Script %r did not stop cleanly', self.name, exc_info=True)

        if self.namespace is not None:
            self.namespace.clear()
            self.namespace = None

        self.loaded.clear()

        logger.debug('Disposed script %r', self.name)
