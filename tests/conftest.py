"""Tests configurations and fixtures."""

from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

from conformgen.config import Disk, GeneratorSettings, RunSettings
from conformgen.core import ProgramGenerator, RegistryParser
from conformgen.runtime import Harness

from .examples.hosts import FakeSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from conformgen.schema import Registry

EXAMPLES = Path(__file__).parent / 'examples'

BASE_SOURCE = EXAMPLES / 'base.actions.yaml'
API_SOURCE = EXAMPLES / 'api.actions.yaml'

RUN_VARIABLES = (
    'TEST_ONLY',
    'CONFORMGEN_SESSION',
    'CONFORMGEN_VERBOSE',
    'CONFORMGEN_TRACE',
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep run settings of the surrounding environment out of the tests."""
    for name in RUN_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def parser() -> RegistryParser:
    """Provide a registry parser with the default safe loader."""
    return RegistryParser()


@pytest.fixture
def make_registry(parser: RegistryParser) -> 'Callable[[str], Registry]':
    """Provide a factory of registries extending the fixture commands.

    The returned factory parses the given YAML source and appends its
    actions to the storage commands every fixture relies on.
    """
    base = parser.parse(BASE_SOURCE.read_text(), filename=BASE_SOURCE.name)

    def factory(content: str = '') -> 'Registry':
        return parser.combine((*base, *parser.parse(content, filename='<test>')))

    return factory


@pytest.fixture
def registry(make_registry: 'Callable[[str], Registry]') -> 'Registry':
    """Provide the registry of every example source."""
    return make_registry(API_SOURCE.read_text())


@pytest.fixture
def settings() -> GeneratorSettings:
    """Provide generator settings with tiny backing stores."""
    return GeneratorSettings(
        disks=(
            Disk(filename='test1.img', size=4096),
            Disk(filename='test2.img', size=2048),
            Disk(filename='test3.img', size=1024),
        ),
        session='tests.examples.hosts:default',
        title='Test API',
    )


@pytest.fixture
def load_program(settings: GeneratorSettings) -> 'Callable[[Registry], dict[str, Any]]':
    """Provide a factory compiling and loading generated programs.

    The returned factory generates the program of a registry, executes
    its source as a module that is not `__main__` and returns the module
    namespace.
    """
    def load(registry: 'Registry') -> dict[str, Any]:
        source = ProgramGenerator(registry, settings).generate()
        namespace: dict[str, Any] = {'__name__': 'conformance'}
        exec(compile(source, '<conformance>', 'exec'), namespace)  # noqa: S102
        return namespace

    return load


@pytest.fixture
def make_harness() -> 'Callable[..., tuple[Harness, FakeSession]]':
    """Provide a factory of harnesses over scripted sessions."""
    def factory(results: dict[str, Any] | None = None,
                **kwargs: Any) -> tuple[Harness, FakeSession]:  # noqa: ANN401
        session = FakeSession(results, **kwargs)
        return Harness(session, settings=RunSettings()), session

    return factory
