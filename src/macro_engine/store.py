"""Macro store interface and an in-memory implementation.

The engine reads other macros only through `MacroStore.get_macro_text`,
which backs the "macros as modules" resolver of scripting-mode macros.
`MemoryMacroStore` keeps validated `Macro` snapshots in memory and can be
filled from a YAML library document.
"""

from typing import TYPE_CHECKING, Protocol

from pydantic import ValidationError
from yaml import safe_load
from yaml.error import MarkedYAMLError

from macro_engine.errors import ConfigurationError
from macro_engine.schema import Macro

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from io import TextIOBase
    from typing import Self


class MacroStore(Protocol):
    """Interface of the host's macro store consumed by the engine."""

    def get_macro_text(self, name: str) -> str | None:
        """Return the source of the macro named `name`, or `None`."""
        ...  # pragma: no cover


class MemoryMacroStore:
    """Macro store holding macro snapshots in memory.

    Macro names are unique; adding a macro with an existing name
    replaces the previous one.
    """

    def __init__(self, macros: 'Iterable[Macro]' = ()) -> None:
        self.macros: dict[str, Macro] = {}
        for macro in macros:
            self.add(macro)

    def __contains__(self, name: object) -> bool:
        return name in self.macros

    def __iter__(self) -> 'Iterator[Macro]':
        return iter(self.macros.values())

    def __len__(self) -> int:
        return len(self.macros)

    def add(self, macro: Macro) -> None:
        """Store a macro under its name."""
        self.macros[macro.name] = macro

    def get(self, name: str) -> Macro | None:
        """Return the macro named `name`, or `None`."""
        return self.macros.get(name)

    def get_macro_text(self, name: str) -> str | None:
        """Return the source of the macro named `name`, or `None`."""
        if macro := self.macros.get(name):
            return macro.contents

        return None

    @classmethod
    def from_yaml(cls, content: 'TextIOBase | str', *,
                  filename: str | None = None) -> 'Self':
        """Build a store from a YAML library document.

        The document is a list of macro mappings:

            - name: Helpers
              language: python
              contents: |
                def greet(who):
                    return f"/echo hello {who}"

        Args:
            content: YAML content as a string or file-like object.
            filename: Optional source name for error messages.

        Returns:
            A store holding every macro of the document.

        Raises:
            ConfigurationError: If the document is not valid YAML or a
                macro entry fails validation.
        """
        try:
            document = safe_load(content)

        except MarkedYAMLError as base:
            raise ConfigurationError.from_yaml_error(base) from base

        if document is None:
            return cls()

        if not isinstance(document, list):
            raise ConfigurationError('Macro library must be a list of macros')

        macros = []
        for item in document:
            try:
                macros.append(Macro.model_validate(item))

            except ValidationError as base:
                raise ConfigurationError.from_pydantic_error(
                    base,
                    data=item,
                    filename=filename,
                ) from base

        return cls(macros)
