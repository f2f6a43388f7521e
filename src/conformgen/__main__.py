"""Command-line interface of conformgen.

Compiles action registries into conformance programs, audits test
coverage and manages the JSON Schema of registry sources.
"""

from json import dumps
from pathlib import Path
from typing import TYPE_CHECKING
from warnings import catch_warnings, simplefilter

from click import ClickException, File, argument, echo, group, option
from click import Path as PathParam
from yaml import safe_load

from conformgen.config import GeneratorSettings
from conformgen.core import ProgramGenerator, RegistryParser, warn_untested
from conformgen.errors import ConformError, CoverageWarning
from conformgen.jsonschema import REGISTRY_PATTERNS, SchemaGenerator

if TYPE_CHECKING:
    from io import TextIOBase

    from conformgen.schema import Registry

SCHEMAS_OPTION = 'yaml.schemas'

SourcePath = PathParam(
    exists=True,
    dir_okay=False,
    readable=True,
    path_type=Path,
)

OutputFilepath = PathParam(
    dir_okay=False,
    readable=True,
    writable=True,
    path_type=Path,
)


def _load(sources: tuple[Path, ...]) -> 'Registry':
    """Load registry sources, turning library errors into CLI errors."""
    try:
        return RegistryParser().parse_files(sources)
    except ConformError as error:
        raise ClickException(str(error)) from error


@group(help='Compile action registries into conformance test programs.')
def cli() -> None:
    """Root CLI group for conformgen tools."""
    return None


@cli.command(
    name='generate',
    help='Compile registry SOURCES into a conformance test program.',
)
@argument('sources', nargs=-1, required=True, type=SourcePath)
@option(
    '-o', '--output',
    type=File('wt', encoding='utf-8'),
    default='-',
    help='Output file of the generated program.',
)
@option(
    '--session',
    help='Default session factory, as module:attribute or entry point name.',
)
@option(
    '--title',
    help='Name of the tested API used in the generated module docstring.',
)
@option(
    '--strict',
    is_flag=True,
    help='Fail when any action has no enabled tests.',
)
def generate(sources: tuple[Path, ...], output: 'TextIOBase',
             session: str | None, title: str | None, strict: bool) -> None:
    """Generate a conformance program.

    Args:
        sources: Registry source files.
        output: Output stream.
        session: Default session factory.
        title: API title.
        strict: Whether untested actions fail generation.
    """
    registry = _load(sources)

    overrides = {
        key: value
        for key, value in (('session', session), ('title', title))
        if value is not None
    }
    settings = GeneratorSettings(**overrides)

    with catch_warnings(record=True) as caught:
        simplefilter('always', CoverageWarning)
        untested = warn_untested(registry)

    for item in caught:
        echo(f'warning: {item.message}', err=True)

    if strict and untested:
        raise ClickException(f'{len(untested)} actions have no tests')

    try:
        program = ProgramGenerator(registry, settings).generate()
    except ConformError as error:
        raise ClickException(str(error)) from error

    output.write(program)


@cli.command(
    name='audit',
    help='List actions of registry SOURCES without enabled tests.',
)
@argument('sources', nargs=-1, required=True, type=SourcePath)
def audit(sources: tuple[Path, ...]) -> None:
    """Print untested actions, failing when there are any.

    Args:
        sources: Registry source files.
    """
    registry = _load(sources)

    with catch_warnings():
        simplefilter('ignore', CoverageWarning)
        untested = warn_untested(registry)

    for name in untested:
        echo(name)

    if untested:
        raise SystemExit(1)


@cli.command(
    name='schema',
    help='Print the registry JSON Schema to standard output.',
)
def print_schema() -> None:
    """Generate and print the JSON Schema."""
    echo(SchemaGenerator.make_schema())


def _update_schemas(schema: str,
                    schemas: dict[str, str | list[str]]) -> dict[str, str | list[str]]:
    """Update YAML schema mappings for VSCode configuration.

    Args:
        schema: Path to the generated schema file.
        schemas: Existing YAML schema configuration mapping.

    Returns:
        Updated schema configuration.
    """
    if not isinstance(schemas, dict):
        schemas = {}

    return {
        **schemas,
        schema: list(REGISTRY_PATTERNS),
    }


@cli.command(
    name='vscode-configure',
    help=(
        'Generate a JSON Schema file and update VSCode settings.json '
        'to enable YAML validation of registry sources.'
    ),
)
@option(
    '-s', '--schema',
    type=OutputFilepath,
    help='Output path for the generated JSON Schema file.',
    default='.vscode/conformgen.schema.json',
)
@argument(
    'settings',
    type=OutputFilepath,
    default='.vscode/settings.json',
)
def configure_vscode(schema: Path, settings: Path) -> None:
    """Configure VSCode YAML validation for registry sources.

    Args:
        schema: Output path for the schema file.
        settings: Path to VSCode settings file.
    """
    schema.parent.mkdir(parents=True, exist_ok=True)
    with schema.open('wt') as output:
        output.write(SchemaGenerator.make_schema())
        output.write('\n')

    content = {}
    if settings.exists():
        content = safe_load(settings.read_text()) or {}

    content[SCHEMAS_OPTION] = _update_schemas(
        schema.as_posix(),
        content.get(SCHEMAS_OPTION, {}),
    )

    settings.parent.mkdir(parents=True, exist_ok=True)
    with settings.open('wt') as output:
        output.write(dumps(content, ensure_ascii=False, indent=4))
        output.write('\n')


if __name__ == '__main__':
    cli()
