"""Literal argument resolver.

Registry test cases spell every argument of an invocation as a literal
string. The resolver interprets those literals against the declared
kinds of the invoked action and produces typed wire values, plus the
presence bitmask of the optional parameters.

The bitmask is the part the session host depends on: bit `i` is set
exactly when the action's `i`-th optional parameter is present, and the
value of an absent parameter is never sent.
"""

from typing import TYPE_CHECKING, assert_never

from pydantic import Field

from conformgen.errors import SchemaDefectError
from conformgen.models import SchemaModel
from conformgen.names import INTEGER_PATTERN
from conformgen.schema import BITMASK_WIDTH, Action, ArgKind, OptArgKind
from conformgen.values import WireValue  # noqa: TC001

if TYPE_CHECKING:
    from collections.abc import Sequence

INT32_RANGE = range(-(2 ** 31), 2 ** 31)
INT64_RANGE = range(-(2 ** 63), 2 ** 63)

#: Literal spelling of an absent `OptString` value.
NULL_LITERAL = 'NULL'
#: Literal spelling of an absent `OString` or `OStringList` parameter.
NOARG_LITERAL = 'NOARG'


class ResolvedArgument(SchemaModel):
    """Typed value of a required parameter."""

    kind: ArgKind
    name: str
    value: WireValue

    @property
    def size(self) -> int | None:
        """Explicit byte length of `BufferIn` values."""
        if isinstance(self.value, bytes):
            return len(self.value)

        return None


class ResolvedOptional(SchemaModel):
    """Typed value and presence of an optional parameter."""

    kind: OptArgKind
    name: str
    position: int = Field(ge=0, lt=BITMASK_WIDTH)
    present: bool
    value: WireValue = None

    @property
    def bit(self) -> int:
        """Contribution of the parameter to the presence bitmask."""
        return (1 << self.position) if self.present else 0


class ResolvedCall(SchemaModel):
    """Invocation with every literal turned into a wire value."""

    action: Action
    arguments: tuple[ResolvedArgument, ...] = ()
    optionals: tuple[ResolvedOptional, ...] = ()
    bitmask: int = Field(default=0, ge=0, lt=2 ** BITMASK_WIDTH)

    @property
    def present(self) -> dict[str, WireValue]:
        """Values of the present optional parameters, by name."""
        return {
            item.name: item.value
            for item in self.optionals
            if item.present
        }


def _parse_int(literal: str, bounds: range, *, type_name: str,
               action: Action, test_name: str | None) -> int:
    """Parse a decimal integer literal within bounds."""
    if INTEGER_PATTERN.fullmatch(literal) is None or int(literal) not in bounds:
        raise SchemaDefectError(
            f'expecting an {type_name}, but got {literal!r}',
            action=action.name,
            test_name=test_name,
        )

    return int(literal)


def _split_list(literal: str) -> tuple[str, ...]:
    """Split a string list literal on single spaces."""
    if not literal:
        return ()

    return tuple(literal.split(' '))


def resolve_argument(kind: ArgKind, literal: str, *, action: Action,  # noqa: C901, PLR0911
                     test_name: str | None = None) -> WireValue:
    """Interpret one required parameter literal.

    Args:
        kind: Declared kind of the parameter.
        literal: Literal spelling from the registry.
        action: Invoked action, used in error messages.
        test_name: Synthesized name of the referencing test.

    Returns:
        The wire value of the parameter.

    Raises:
        SchemaDefectError: If the literal can not be interpreted.
    """
    match kind:
        case (
            ArgKind.STRING
            | ArgKind.PATHNAME
            | ArgKind.DEVICE
            | ArgKind.MOUNTABLE
            | ArgKind.DEVICE_OR_PATH
            | ArgKind.MOUNTABLE_OR_PATH
            | ArgKind.KEY
            | ArgKind.FILE_IN
            | ArgKind.FILE_OUT
        ):
            return literal
        case ArgKind.OPT_STRING:
            return None if literal == NULL_LITERAL else literal
        case ArgKind.BUFFER_IN:
            return literal.encode('utf-8')
        case ArgKind.STRING_LIST | ArgKind.DEVICE_LIST:
            return _split_list(literal)
        case ArgKind.INT:
            return _parse_int(literal, INT32_RANGE, type_name='int',
                              action=action, test_name=test_name)
        case ArgKind.INT64:
            return _parse_int(literal, INT64_RANGE, type_name='int64',
                              action=action, test_name=test_name)
        case ArgKind.BOOL:
            if literal not in ('true', 'false'):
                raise SchemaDefectError(
                    f'expecting "true" or "false", but got {literal!r}',
                    action=action.name,
                    test_name=test_name,
                )
            return literal == 'true'
        case ArgKind.POINTER:
            raise SchemaDefectError(
                f'pointer arguments of function {action.name} can not be given as literals',
                action=action.name,
                test_name=test_name,
            )
        case _:  # pragma: no cover
            assert_never(kind)


def resolve_optional(kind: OptArgKind, name: str, literal: str, *,  # noqa: C901
                     action: Action, test_name: str | None = None) -> tuple[bool, WireValue]:
    """Interpret one optional parameter literal.

    Args:
        kind: Declared kind of the optional parameter.
        name: Name of the optional parameter.
        literal: Literal spelling from the registry.
        action: Invoked action, used in error messages.
        test_name: Synthesized name of the referencing test.

    Returns:
        Presence of the parameter and its wire value (`None` when absent).

    Raises:
        SchemaDefectError: If the literal can not be interpreted.
    """
    match kind:
        case OptArgKind.BOOL:
            if literal == '':
                return False, None
            if literal not in ('true', 'false'):
                raise SchemaDefectError(
                    f"boolean optional arg '{name}' should be empty string or \"true\" or \"false\"",
                    action=action.name,
                    test_name=test_name,
                )
            return True, literal == 'true'
        case OptArgKind.INT | OptArgKind.INT64:
            if literal == '':
                return False, None
            type_name, bounds = (
                ('int', INT32_RANGE)
                if kind is OptArgKind.INT
                else ('int64', INT64_RANGE)
            )
            if INTEGER_PATTERN.fullmatch(literal) is None or int(literal) not in bounds:
                raise SchemaDefectError(
                    f"{type_name} optional arg '{name}' should be empty string or number",
                    action=action.name,
                    test_name=test_name,
                )
            return True, int(literal)
        case OptArgKind.STRING:
            if literal == NOARG_LITERAL:
                return False, None
            return True, literal
        case OptArgKind.STRING_LIST:
            if literal == NOARG_LITERAL:
                return False, None
            return True, _split_list(literal)
        case _:  # pragma: no cover
            assert_never(kind)


def resolve(action: Action, literals: 'Sequence[str]', *,
            test_name: str | None = None) -> ResolvedCall:
    """Resolve the literal arguments of one invocation.

    Literals are matched positionally: first every required parameter,
    then every optional parameter. Their count must match the combined
    arity of the action exactly.

    Args:
        action: Invoked action.
        literals: Literal arguments of the invocation.
        test_name: Synthesized name of the referencing test.

    Returns:
        The resolved call with its presence bitmask.

    Raises:
        SchemaDefectError: If the literal count does not match the arity
            of the action or a literal can not be interpreted.
    """
    if len(literals) < action.arity:
        raise SchemaDefectError(
            f'in test, too few args given to function {action.name}',
            action=action.name,
            test_name=test_name,
        )

    if len(literals) > action.arity:
        raise SchemaDefectError(
            f'in test, too many args given to function {action.name}',
            action=action.name,
            test_name=test_name,
        )

    required, optional = literals[:len(action.args)], literals[len(action.args):]

    arguments = tuple(
        ResolvedArgument(
            kind=param.kind,
            name=param.name,
            value=resolve_argument(param.kind, literal, action=action, test_name=test_name),
        )
        for param, literal in zip(action.args, required, strict=True)
    )

    optionals = []
    for position, (param, literal) in enumerate(zip(action.optargs, optional, strict=True)):
        present, value = resolve_optional(
            param.kind, param.name, literal,
            action=action,
            test_name=test_name,
        )
        optionals.append(ResolvedOptional(
            kind=param.kind,
            name=param.name,
            position=position,
            present=present,
            value=value,
        ))

    bitmask = 0
    for item in optionals:
        bitmask |= item.bit

    return ResolvedCall(
        action=action,
        arguments=arguments,
        optionals=tuple(optionals),
        bitmask=bitmask,
    )


def pad_optional_literals(action: Action, required: 'Sequence[str]') -> tuple[str, ...]:
    """Complete required literals with absent spellings of every optional parameter.

    Fixture commands are written against the required parameters only;
    padding keeps them valid when optional parameters are added to the
    commands they invoke.

    Args:
        action: Invoked action.
        required: Literals of the required parameters.

    Returns:
        Literals covering the full arity of the action.
    """
    return (*required, *(param.kind.absent_literal for param in action.optargs))
