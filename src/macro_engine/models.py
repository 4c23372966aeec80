"""Base Pydantic models for engine data.

This module defines the foundational model classes used by macro and
command structures as well as by the runtime settings. It enforces
immutability so that a macro snapshot cannot change while it runs.
"""

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all engine data.

    Design principles enforced by this model:
        - Immutability: macros and parsed commands cannot be modified
          after creation, so an active macro always works on a snapshot.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos in macro libraries.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Settings may be resolved from the environment; unknown variables
    are ignored so that the surrounding environment does not break
    configuration resolution.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
