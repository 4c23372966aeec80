"""Tests configurations and fixtures."""

from importlib.metadata import EntryPoint, EntryPoints
from os import environ
from typing import TYPE_CHECKING, Any

import pytest

from macro_engine.core import MacroParser
from macro_engine.schema import Language, Macro
from macro_engine.settings import EngineSettings
from macro_engine.store import MemoryMacroStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from pytest_mock import MockerFixture, MockType


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop `MACRO_*` variables so settings always start from defaults."""
    for name in tuple(environ):
        if name.startswith('MACRO_'):
            monkeypatch.delenv(name)


@pytest.fixture
def parser() -> MacroParser:
    """Provide the reference DSL parser."""
    return MacroParser('test')


@pytest.fixture
def settings() -> EngineSettings:
    """Provide default engine settings."""
    return EngineSettings()


@pytest.fixture
def store() -> MemoryMacroStore:
    """Provide a macro store with a helper library and a native macro."""
    return MemoryMacroStore((
        Macro(
            name='Helpers',
            language=Language.PYTHON,
            contents=(
                'PREFIX = "/echo"\n'
                '\n'
                'def greet(who):\n'
                '    return f"{PREFIX} hello {who}"\n'
            ),
        ),
        Macro(
            name='Opener',
            contents='/ac "Muscle Memory" <wait.3>\n/ac Veneration <wait.2>',
        ),
    ))


@pytest.fixture
def patch_entrypoints(mocker: 'MockerFixture') -> 'Callable[..., MockType]':
    """Provide a factory for mocking `importlib.metadata.entry_points`.

    Returns a callable that patches `entry_points()` to simulate
    discovery of capabilities in the `macro_capabilities` entry point
    group.

    This fixture is intended for testing capability discovery and error
    handling logic without relying on real installed entry points.
    """
    def patch(*capabilities: Any, raises: Exception | None = None) -> 'MockType':  # noqa: ANN401
        """Patch `entry_points` with a controlled capability configuration.

        Args:
            capabilities: Objects to be returned by `EntryPoint.load()`.
                If empty, no entry points are registered.
            raises: Exception to raise when `EntryPoint.load()` is called.
                Used to simulate capability load failures.

        Returns:
            A mock patch object produced by `mocker.patch` that replaces
            `importlib.metadata.entry_points` for the duration of the test.
        """
        entrypoints = []
        for capability in capabilities:
            ep = mocker.Mock(spec=EntryPoint)
            ep.group = 'macro_capabilities'
            ep.name = 'tests'
            ep.value = 'tests.examples.capabilities:test'
            ep.load.return_value = capability
            if raises is not None:
                ep.load.side_effect = raises
            entrypoints.append(ep)

        return mocker.patch(
            'importlib.metadata.entry_points',
            return_value=EntryPoints(entrypoints),
        )

    return patch
