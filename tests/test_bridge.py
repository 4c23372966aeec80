"""Tests for the scripting bridge."""

from typing import TYPE_CHECKING

import pytest

from macro_engine.errors import (
    CapabilityError,
    CapabilityWarning,
    ModuleNotFound,
    ScriptInitError,
    ScriptRuntimeError,
    UnsupportedOperationError,
)
from macro_engine.extensions import FunctionCapability
from macro_engine.scripting import ScriptingBridge
from macro_engine.settings import EngineSettings
from tests.examples.capabilities import CharacterState, Inventory, crafting

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture

    from macro_engine.store import MemoryMacroStore


def run(bridge: ScriptingBridge, limit: int = 100) -> list[object]:
    """Collect every value yielded by the script."""
    values = []
    for _ in range(limit):
        if not (results := bridge.resume()):
            break
        values.append(results[0])

    return values


def test_wrap_source() -> None:
    """Indent every line into the entrypoint generator."""
    wrapped = ScriptingBridge.wrap('a = 1\r\nyield "/a"\rif a:\n    yield "/b"')

    assert wrapped.splitlines() == [
        'def entrypoint():',
        '    a = 1',
        '    yield "/a"',
        '    if a:',
        '        yield "/b"',
        '    yield from ()',
        '',
        '__entrypoint__ = coroutine(entrypoint)',
    ]


def test_lazy_start() -> None:
    """Start the interpreter once, on demand."""
    bridge = ScriptingBridge('yield "/echo a"', name='test')

    assert bridge.coroutine is None
    assert bridge.namespace is None

    coroutine = bridge.start()

    assert bridge.start() is coroutine
    assert run(bridge) == ['/echo a']
    assert bridge.finished


def test_syntax_error_line() -> None:
    """Report syntax errors with the macro line number."""
    bridge = ScriptingBridge('yield "/a"\n\nyield )', name='test')

    with pytest.raises(ScriptInitError, match=r'^Invalid script syntax') as error:
        bridge.start()

    assert error.value.context is not None
    assert error.value.context.get('line_num') == 2


def test_entrypoint_must_be_generator() -> None:
    """Reject entrypoints that are not generator functions."""
    bridge = ScriptingBridge('yield "/a"', name='test')

    with pytest.raises(ScriptInitError, match=r'^Could not obtain entrypoint'):
        bridge.wrap_entrypoint(lambda: None)


def test_missing_entrypoint(mocker: 'MockerFixture') -> None:
    """Fail when the wrapped source produces no entrypoint coroutine."""
    bridge = ScriptingBridge('yield "/a"', name='test')
    mocker.patch.object(bridge, 'wrap_entrypoint', return_value=None)

    with pytest.raises(ScriptInitError, match=r'^Could not obtain entrypoint'):
        bridge.start()

    assert bridge.coroutine is None


def test_capability_functions() -> None:
    """Expose operations as globals and as capability namespaces."""
    bridge = ScriptingBridge(
        'yield f("/echo {GetCharacterCondition()} {CharacterState.GetLevel()}")\n'
        'yield f("/echo {Items.GetItemCount(5024)} {GetItemCount(1)}")\n'
        'yield f("/echo {GetProgress(50)} {Crafting.IsCrafting()}")\n',
        name='test',
        capabilities=(CharacterState('excellent'), Inventory({5024: 3}), crafting),
    )

    assert run(bridge) == [
        '/echo excellent 90',
        '/echo 3 0',
        '/echo 0.5 True',
    ]


def test_non_operation_methods_hidden() -> None:
    """Expose only methods marked as operations."""
    bridge = ScriptingBridge('yield str(hasattr(CharacterState, "reset"))', capabilities=(CharacterState(),))

    assert run(bridge) == ['False']
    assert bridge.functions['CharacterState'] == ('GetCharacterCondition', 'GetLevel')


def test_functions_listing() -> None:
    """List operations grouped by capability, including Internal."""
    bridge = ScriptingBridge('', capabilities=(Inventory(),))

    assert bridge.functions == {
        'Internal': ('InternalGetMacroText', 'InternalGetSearchPaths', 'InternalListFunctions'),
        'Items': ('GetItemCount',),
    }


def test_internal_capability(store: 'MemoryMacroStore', tmp_path: 'Path') -> None:
    """Read stored macros, functions and search paths from scripts."""
    settings = EngineSettings(extra_module_search_paths=(str(tmp_path),))
    bridge = ScriptingBridge(
        'yield InternalGetMacroText("Opener").splitlines()[0]\n'
        'yield str(InternalGetMacroText("Unknown"))\n'
        'yield ",".join(InternalListFunctions()["Internal"])\n'
        'yield Internal.InternalGetSearchPaths()[0]\n',
        settings=settings,
        store=store,
    )

    assert run(bridge) == [
        '/ac "Muscle Memory" <wait.3>',
        'None',
        'InternalGetMacroText,InternalGetSearchPaths,InternalListFunctions',
        str(tmp_path),
    ]


def test_services() -> None:
    """Expose host services as globals."""
    class Chat:
        def __init__(self) -> None:
            self.sent: list[str] = []

        def send(self, text: str) -> None:
            self.sent.append(text)

    chat = Chat()
    bridge = ScriptingBridge(
        'chat.send("hello")\nyield f"/echo {retries}"',
        services={'chat': chat, 'retries': 3},
    )

    assert run(bridge) == ['/echo 3']
    assert chat.sent == ['hello']


def test_service_shadowing_warns() -> None:
    """Warn when a service replaces a script function."""
    bridge = ScriptingBridge('yield GetLevel', capabilities=(CharacterState(),), services={'GetLevel': '/echo 1'})

    with pytest.warns(CapabilityWarning, match=r"^Service 'GetLevel' is shadowing"):
        assert run(bridge) == ['/echo 1']


def test_service_shadowing_strict() -> None:
    """Fail when a service reuses a helper name on strict mode."""
    bridge = ScriptingBridge('yield ""', services={'require': None}, strict=True)

    with pytest.raises(CapabilityError, match=r"^Service 'require' is shadowing"):
        bridge.start()


def test_operation_shadowing_warns() -> None:
    """Warn when two capabilities provide the same operation."""
    other = FunctionCapability(name='Other', operations={'GetLevel': lambda: 1})

    with pytest.warns(CapabilityWarning, match=r'^Operation Other.GetLevel'):
        bridge = ScriptingBridge('yield str(GetLevel())', capabilities=(CharacterState(), other))

    assert run(bridge) == ['1']


def test_operation_shadowing_strict() -> None:
    """Fail when two capabilities provide the same operation on strict mode."""
    other = FunctionCapability(name='Other', operations={'GetLevel': lambda: 1})

    with pytest.raises(CapabilityError, match=r'^Operation Other.GetLevel'):
        ScriptingBridge('', capabilities=(CharacterState(), other), strict=True)


def test_capability_shadowing_warns() -> None:
    """Warn when a capability name is registered twice."""
    with pytest.warns(CapabilityWarning, match=r"^Capability 'CharacterState'"):
        ScriptingBridge('', capabilities=(CharacterState(), CharacterState('poor')))


def test_unknown_operation() -> None:
    """Reject dispatch of unknown operations."""
    with pytest.raises(UnsupportedOperationError, match=r'^CharacterState has no operation'):
        CharacterState().dispatch('reset')


def test_interpolation_scopes() -> None:
    """Resolve names from the innermost scope outward, then globals."""
    bridge = ScriptingBridge(
        'name = "outer"\n'
        'def inner(name):\n'
        '    return f("/echo {name} {level}")\n'
        'level = 5\n'
        'yield inner("inner")\n'
        'yield f("/echo {name} {level * 2}")\n',
        services={'level': 1},
    )

    assert run(bridge) == ['/echo inner 5', '/echo outer 10']


def test_interpolation_globals() -> None:
    """Fall back to globals and keep unbalanced braces."""
    bridge = ScriptingBridge('yield f("/echo {crafter} { {1: 2}[1] } {")', services={'crafter': 'Alice'})

    assert run(bridge) == ['/echo Alice 2 {']


def test_interpolation_error() -> None:
    """Name the failing expression."""
    bridge = ScriptingBridge('yield f("/echo {missing}")')

    with pytest.raises(ScriptRuntimeError, match=r'^Error during evaluation of expression `missing`'):
        bridge.resume()


def test_preloaded_import() -> None:
    """Import whitelisted standard library modules."""
    bridge = ScriptingBridge('import math\nfrom json import dumps\nyield dumps(math.floor(2.5))')

    assert run(bridge) == ['2']


def test_import_not_whitelisted() -> None:
    """Refuse modules outside the preload list and search paths."""
    bridge = ScriptingBridge('import os\nyield "/echo"')

    with pytest.raises(ModuleNotFound, match=r"^Module 'os' not found \(no module search paths configured\)"):
        bridge.resume()


def test_relative_import() -> None:
    """Refuse relative imports."""
    bridge = ScriptingBridge('from . import helpers\nyield ""')

    with pytest.raises(ScriptRuntimeError, match=r'^Script raised ImportError'):
        bridge.resume()


def test_sandbox_builtins() -> None:
    """Hide file and introspection builtins."""
    bridge = ScriptingBridge('yield open("/etc/passwd").read()')

    with pytest.raises(ScriptRuntimeError, match=r'^Script raised NameError'):
        bridge.resume()


def test_require_module_from_file(tmp_path: 'Path') -> None:
    """Load and cache modules from search paths."""
    (tmp_path / 'counter.py').write_text('loads = []\nloads.append(1)\n\ndef label(n):\n    return f("/echo {n}")\n')
    settings = EngineSettings(extra_module_search_paths=(str(tmp_path),))
    bridge = ScriptingBridge(
        'first = require("counter")\n'
        'import counter\n'
        'yield counter.label(len(counter.loads))\n'
        'yield str(first is counter)\n',
        settings=settings,
    )

    assert run(bridge) == ['/echo 1', 'True']
    assert set(bridge.loaded) == {'counter'}


def test_require_cyclic(tmp_path: 'Path') -> None:
    """Expose partially initialized modules to cyclic requires."""
    (tmp_path / 'first.py').write_text('import second\nVALUE = "first"\n')
    (tmp_path / 'second.py').write_text('first = require("first")\nSEEN = hasattr(first, "VALUE")\n')
    settings = EngineSettings(extra_module_search_paths=(str(tmp_path),))
    bridge = ScriptingBridge('import first, second\nyield f"{first.VALUE} {second.SEEN}"', settings=settings)

    assert run(bridge) == ['first False']


def test_require_failure_not_cached(tmp_path: 'Path') -> None:
    """Drop a module from the cache when its body fails."""
    (tmp_path / 'broken.py').write_text('raise ValueError("broken")\n')
    settings = EngineSettings(extra_module_search_paths=(str(tmp_path),))
    bridge = ScriptingBridge('require("broken")\nyield ""', settings=settings)

    with pytest.raises(ScriptRuntimeError, match=r"^Module 'broken' failed to load"):
        bridge.resume()

    assert bridge.loaded == {}


def test_require_stored_macro(store: 'MemoryMacroStore') -> None:
    """Use other stored macros as modules."""
    bridge = ScriptingBridge(
        'helpers = require("Helpers.macro")\n'
        'yield helpers.greet("Bob")\n'
        'yield f("{helpers.PREFIX} done")\n',
        store=store,
    )

    assert run(bridge) == ['/echo hello Bob', '/echo done']


def test_import_dotted_module(tmp_path: 'Path') -> None:
    """Bind the top-level name of a dotted import."""
    (tmp_path / 'pkg').mkdir()
    (tmp_path / 'pkg' / 'tools.py').write_text('ORIGIN = "dotted"\n')
    settings = EngineSettings(extra_module_search_paths=(str(tmp_path),))
    bridge = ScriptingBridge(
        'import pkg.tools\n'
        'from pkg import tools\n'
        'import pkg.tools as alias\n'
        'yield f("/echo {pkg.tools.ORIGIN}")\n'
        'yield str(tools is alias is pkg.tools)\n',
        settings=settings,
    )

    assert run(bridge) == ['/echo dotted', 'True']
    assert set(bridge.loaded) == {'pkg', 'pkg.tools'}


def test_import_dotted_module_with_parent(tmp_path: 'Path') -> None:
    """Attach submodules to an existing parent module."""
    (tmp_path / 'pkg').mkdir()
    (tmp_path / 'pkg.py').write_text('NAME = "parent"\n')
    (tmp_path / 'pkg' / 'tools.py').write_text('ORIGIN = "dotted"\n')
    settings = EngineSettings(extra_module_search_paths=(str(tmp_path),))
    bridge = ScriptingBridge(
        'import pkg.tools\n'
        'yield f("/echo {pkg.NAME} {pkg.tools.ORIGIN}")\n',
        settings=settings,
    )

    assert run(bridge) == ['/echo parent dotted']


def test_import_error_fallback() -> None:
    """Let macros handle missing modules as import errors."""
    bridge = ScriptingBridge(
        'try:\n'
        '    import missing\n'
        'except ImportError as error:\n'
        '    missing = error.name\n'
        'yield f("/echo {missing}")\n',
    )

    assert run(bridge) == ['/echo missing']


def test_interpolation_nested_scopes() -> None:
    """Resolve locals inside generator expressions, comprehensions and lambdas."""
    bridge = ScriptingBridge(
        'def render(n):\n'
        '    return f("/echo {sum(n for _ in range(3))} {[n * k for k in range(2)]} {(lambda: n)()}")\n'
        'n = 5\n'
        'yield f("/echo {sum(n for _ in range(3))}")\n'
        'yield render(2)\n',
    )

    assert run(bridge) == ['/echo 15', '/echo 6 [0, 2] 2']


def test_helper_shadowing_warns() -> None:
    """Keep helpers when a capability, operation or service reuses their names."""
    text = FunctionCapability(name='Text', operations={'f': str.upper})

    bridge = ScriptingBridge('yield f("/echo {1 + 1}")', capabilities=(text,), services={'coroutine': None})

    with pytest.warns(CapabilityWarning) as records:
        assert run(bridge) == ['/echo 2']

    assert [str(record.message) for record in records] == [
        "Operation 'f' is shadowing a script helper",
        "Service 'coroutine' is shadowing a script helper",
    ]


def test_helper_shadowing_strict() -> None:
    """Fail when a capability reuses a helper name on strict mode."""
    loader = FunctionCapability(name='require', operations={'Load': print})
    bridge = ScriptingBridge('yield ""', capabilities=(loader,), strict=True)

    with pytest.raises(CapabilityError, match=r"^Capability 'require' is shadowing a script helper"):
        bridge.start()


def test_dispose() -> None:
    """Release the coroutine and refuse to restart."""
    bridge = ScriptingBridge('while True:\n    yield "/echo tick"')
    bridge.resume()

    bridge.dispose()
    bridge.dispose()

    assert bridge.coroutine is None
    assert bridge.namespace is None
    assert bridge.loaded == {}

    with pytest.raises(ScriptInitError, match=r'^Script has been disposed'):
        bridge.start()


def test_dispose_logs_teardown_failure(caplog: pytest.LogCaptureFixture) -> None:
    """Swallow and log failures of the script cleanup."""
    bridge = ScriptingBridge('try:\n    yield "/a"\nfinally:\n    yield "/b"')
    bridge.resume()

    with caplog.at_level('WARNING', logger='macro_engine.scripting.bridge'):
        bridge.dispose()

    assert 'did not stop cleanly' in caplog.text
