"""Base Pydantic models for registry elements.

This module defines the foundational model classes used by all registry
structures. It enforces immutability and strict schema validation to
guarantee that compiled registries are deterministic and explicit.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for all registry elements.

    This class serves as the root for all Pydantic models representing
    registry constructs such as actions, parameters, test cases and
    assertions, and for the resolved calls derived from them.

    Design principles enforced by this model:
        - Immutability: elements cannot be modified after creation.
          Every downstream component reads the same registry.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos in registry sources.

    All registry models must inherit from this class.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class DescribedMixin(SchemaModel):
    """Mixin providing element self-documentation.

    The fields defined in this model do not affect generation and
    are used purely for descriptive purposes.
    """

    title: str | None = Field(
        default=None,
        title='Title',
        description='Short human-readable title of the registry element.',
    )

    description: str | None = Field(
        default=None,
        title='Description',
        description='Detailed human-readable description of the registry element.',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for configuration settings.

    This class serves as the root for all settings models responsible for
    resolving configuration from environment variables.

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown or extra fields are ignored.
          This allows the surrounding environment to contain unrelated
          variables without breaking configuration resolution.

    All settings models must inherit from this class.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
