"""Configuration settings.

Both the generator and the generated conformance programs read their
configuration from environment variables through immutable settings
models. Generator settings use the `CONFORMGEN_` prefix; command-line
options override them.
"""

from typing import TYPE_CHECKING, Annotated, Any

from pydantic import AliasChoices, Field, create_model
from pydantic_settings import SettingsConfigDict

from conformgen.models import SchemaModel, SettingsModel

if TYPE_CHECKING:
    from collections.abc import Iterable

MIB = 1024 * 1024


class Disk(SchemaModel):
    """Backing store created by the generated program."""

    filename: str = Field(
        min_length=1,
        title='Filename',
        description='Path of the backing store, relative to the working directory.',
    )

    size: int = Field(
        gt=0,
        title='Size',
        description='Size of the backing store in bytes.',
    )


DEFAULT_DISKS = (
    Disk(filename='test1.img', size=500 * MIB),
    Disk(filename='test2.img', size=50 * MIB),
    Disk(filename='test3.img', size=10 * MIB),
)


class GeneratorSettings(SettingsModel):
    """Settings baked into generated programs."""

    model_config = SettingsConfigDict(
        env_prefix='CONFORMGEN_',
    )

    disks: tuple[Disk, ...] = Field(
        default=DEFAULT_DISKS,
        min_length=2,
        title='Backing stores',
        description=(
            'Backing stores in the order they are attached; the first one '
            'holds test fixtures and the second one the scratch filesystem.'
        ),
    )

    reference_image: str = Field(
        default='../data/test.iso',
        min_length=1,
        title='Reference image',
        description='Read-only image attached after the backing stores.',
    )

    startup_timeout: int = Field(
        default=600,
        gt=0,
        title='Startup timeout',
        description='Seconds the session may take to start before the run is aborted.',
    )

    session: str | None = Field(
        default=None,
        title='Session host',
        description=(
            'Default session factory of the generated program, as '
            '`module:attribute` or an entry point name.'
        ),
    )

    title: str = Field(
        default='the API',
        min_length=1,
        title='API title',
        description='Name of the tested API used in the generated module docstring.',
    )


class RunSettings(SettingsModel):
    """Settings of a generated program run."""

    test_only: str | None = Field(
        default=None,
        validation_alias=AliasChoices('TEST_ONLY'),
        title='Inclusion filter',
        description='When set, only units whose name contains it are run.',
    )

    session: str | None = Field(
        default=None,
        validation_alias=AliasChoices('CONFORMGEN_SESSION'),
        title='Session host',
        description='Session factory overriding the one baked into the program.',
    )

    verbose: bool = Field(
        default=False,
        validation_alias=AliasChoices('CONFORMGEN_VERBOSE'),
        title='Verbose output',
        description='Print a separator line before each unit.',
    )

    trace: bool = Field(
        default=False,
        validation_alias=AliasChoices('CONFORMGEN_TRACE'),
        title='Call tracing',
        description='Whether the session host traces calls and their results.',
    )


def switch_variable(name: str) -> str:
    """Name of the exclusion variable of a unit or action switch name."""
    return f'SKIP_{name.upper()}'


def build_switches(names: 'Iterable[str]') -> type[SettingsModel]:
    """Create a settings model of exclusion switches.

    Every name gets a `SKIP_<NAME>` variable; unit names such as
    `test_mkfs_0` and per-action names such as `test_mkfs` are passed
    the same way.

    Args:
        names: Switch names.

    Returns:
        A dynamically created `SettingsModel` subclass.
    """
    fields: dict[str, Any] = {}
    for name in names:
        variable = switch_variable(name)
        fields[variable.lower()] = Annotated[
            str | None, Field(
                default=None,
                validation_alias=AliasChoices(variable),
                title=variable,
            ),
        ]

    return create_model('SwitchSettings', __base__=SettingsModel, **fields)
