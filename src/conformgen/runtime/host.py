"""Session host interface.

Generated programs talk to the implementation under test through a
session object. The session is created by a factory named either as a
`module:attribute` reference or as an entry point of the
`conformgen_hosts` group.
"""

from collections.abc import Callable
from importlib import import_module
from typing import Any, Protocol, Self, runtime_checkable

from pydantic import Field, model_validator

from conformgen.errors import HostError, SetupError
from conformgen.models import SchemaModel
from conformgen.values import RuntimeValue, WireValue  # noqa: TC001

#: Entry point group of session host factories.
HOSTS_GROUP = 'conformgen_hosts'


class OptArgs(SchemaModel):
    """Optional arguments of one call.

    Only present parameters carry a value; bit `i` of the bitmask is set
    exactly when the `i`-th declared optional parameter is present.
    """

    bitmask: int = Field(ge=0, lt=2 ** 64)
    values: dict[str, WireValue] = Field(default_factory=dict)

    @model_validator(mode='after')
    def check_presence(self) -> Self:
        """Require one value per bit set in the bitmask."""
        if self.bitmask.bit_count() != len(self.values):
            raise ValueError(
                f'Bitmask {self.bitmask:#x} does not match {len(self.values)} present values',
            )

        return self


@runtime_checkable
class Session(Protocol):
    """Request/response interface of the implementation under test.

    Failures are reported through the return value of `call`: `-1` for
    actions returning integers or booleans, `None` for actions returning
    strings, lists, structs or buffers. Structs are objects with one
    attribute per field, hashtables are flat key/value sequences and
    buffers are `bytes`. `BufferIn` parameters are passed as two
    positional values, the bytes and their length.
    """

    def call(self, symbol: str, args: tuple[Any, ...],
             optargs: OptArgs | None = None) -> RuntimeValue:
        """Invoke an action synchronously."""
        ...

    def feature_available(self, groups: tuple[str, ...]) -> bool:
        """Whether every listed capability group is available."""
        ...

    def push_error_handler(self) -> None:
        """Suspend default error reporting."""
        ...

    def pop_error_handler(self) -> None:
        """Restore the error reporting suspended last."""
        ...

    def register_close_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback fired once when the session is closed."""
        ...

    def add_drive(self, filename: str) -> RuntimeValue:
        """Attach a writable backing store."""
        ...

    def add_drive_ro(self, filename: str) -> RuntimeValue:
        """Attach a read-only image."""
        ...

    def launch(self) -> RuntimeValue:
        """Start the session once every drive is attached."""
        ...

    def close(self) -> None:
        """Tear the session down."""
        ...


def load_factory(reference: str) -> Callable[[], Session]:
    """Load a session factory.

    Args:
        reference: `module:attribute` reference or entry point name.

    Returns:
        The session factory.

    Raises:
        HostError: If the factory can not be found.
    """
    if ':' in reference:
        module_name, _, attribute = reference.partition(':')
        try:
            target: Any = import_module(module_name)
            for part in attribute.split('.'):
                target = getattr(target, part)
        except (ImportError, AttributeError) as base:
            raise HostError(f'Can not load session host {reference!r}') from base
        return target

    from importlib.metadata import entry_points  # noqa: PLC0415

    for entrypoint in entry_points().select(group=HOSTS_GROUP, name=reference):
        return entrypoint.load()

    raise HostError(f'Session host {reference!r} is not registered in {HOSTS_GROUP!r}')


def open_session(reference: str | None) -> Session:
    """Create a session from a factory reference.

    Raises:
        SetupError: If no session can be created.
    """
    if not reference:
        raise SetupError('no session host configured')

    try:
        session = load_factory(reference)()
    except HostError as base:
        raise SetupError(str(base)) from base

    if not isinstance(session, Session):
        raise SetupError(f'{reference!r} did not create a session')

    return session
