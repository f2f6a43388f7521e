"""Core type definitions for wire values.

This module defines the value types exchanged between the literal
resolver, the code emitters and the runtime support layer. Literal
strings authored in the registry are turned into these wire values
before they are rendered into the generated program.
"""

from collections.abc import Mapping
from typing import Any

#: Scalars are atomic values that can be passed to the session host
#: as they are.
type Scalar = str | bytes | int | bool

#: A wire value is a value of a required or optional call parameter.
#: String lists travel as tuples and absent values as `None`.
type WireValue = Scalar | tuple[str, ...] | None

#: Any Python object received from a session host.
type RuntimeValue = Any


def render(value: WireValue) -> str:
    """Render a wire value as a Python source literal.

    Python's own `repr` is used for scalars so that quoting, escapes and
    embedded zero bytes survive unchanged; tuples always keep the trailing
    comma of one-element tuples.

    Args:
        value: Wire value to render.

    Returns:
        Python expression evaluating to an equal value.

    Raises:
        TypeError: If the value type is unsupported.
    """
    if value is None or isinstance(value, (str, bytes, bool, int)):
        return repr(value)

    if isinstance(value, tuple):
        if len(value) == 1:
            return f'({render(value[0])},)'
        return f'({', '.join(render(item) for item in value)})'

    raise TypeError(f'{value!r} has unsupported type')


def render_mapping(values: Mapping[str, WireValue]) -> str:
    """Render a mapping of names to wire values as a dict literal."""
    return '{' + ', '.join(
        f'{key!r}: {render(item)}'
        for key, item in values.items()
    ) + '}'
