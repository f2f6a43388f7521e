"""Emission of single invocations.

An invocation is lowered into three parts: bindings of the argument
values that the call refers to by name, the call itself, and the check
of the returned value against the error sentinel of the action.
"""

from typing import TYPE_CHECKING, assert_never

from conformgen.errors import SchemaDefectError
from conformgen.schema import ArgKind, ErrorSentinel
from conformgen.values import render, render_mapping

from .resolver import resolve

if TYPE_CHECKING:
    from conformgen.schema import Registry
    from conformgen.schema.assertions import Invocation

    from .resolver import ResolvedArgument, ResolvedCall
    from .writer import CodeWriter, SymbolCounter


def bind_argument(writer: 'CodeWriter', symbols: 'SymbolCounter',  # noqa: C901
                  argument: 'ResolvedArgument') -> tuple[str, ...]:
    """Bind a required argument and return the expressions passed to the call.

    Args:
        writer: Target code writer.
        symbols: Identifier counter of the generation run.
        argument: Resolved required argument.

    Returns:
        Expressions of the argument at the call site. `BufferIn` arguments
        travel as two values, the bytes and their explicit length.
    """
    match argument.kind:
        case ArgKind.OPT_STRING if argument.value is None:
            return ('None',)
        case (
            ArgKind.STRING
            | ArgKind.OPT_STRING
            | ArgKind.PATHNAME
            | ArgKind.DEVICE
            | ArgKind.MOUNTABLE
            | ArgKind.DEVICE_OR_PATH
            | ArgKind.MOUNTABLE_OR_PATH
            | ArgKind.KEY
            | ArgKind.STRING_LIST
            | ArgKind.DEVICE_LIST
        ):
            sym = symbols('arg')
            writer.line(f'{sym} = {render(argument.value)}')
            return (sym,)
        case ArgKind.BUFFER_IN:
            sym = symbols('arg')
            writer.line(f'{sym} = {render(argument.value)}')
            writer.line(f'{sym}_size = {argument.size}')
            return (sym, f'{sym}_size')
        case (
            ArgKind.INT
            | ArgKind.INT64
            | ArgKind.BOOL
            | ArgKind.FILE_IN
            | ArgKind.FILE_OUT
        ):
            return (render(argument.value),)
        case ArgKind.POINTER:  # pragma: no cover
            raise AssertionError('pointer arguments are rejected by the resolver')
        case _:  # pragma: no cover
            assert_never(argument.kind)


def emit_sentinel_check(writer: 'CodeWriter', call: 'ResolvedCall', ret: str, *,
                        on_failure: str, expect_error: bool = False,
                        test_name: str | None = None) -> None:
    """Emit the error sentinel check of a call result.

    Args:
        writer: Target code writer.
        call: Resolved call.
        ret: Variable holding the call result.
        on_failure: Statement executed when the check does not hold.
        expect_error: Whether the call is expected to fail.
        test_name: Synthesized name of the test, used in error messages.

    Raises:
        SchemaDefectError: If failure is expected from an action that
            can not report failure.
    """
    match call.action.returns.sentinel, expect_error:
        case ErrorSentinel.CANNOT_FAIL, False:
            return
        case ErrorSentinel.CANNOT_FAIL, True:
            raise SchemaDefectError(
                f'function {call.action.name} can not report failure',
                action=call.action.name,
                test_name=test_name,
            )
        case ErrorSentinel.MINUS_ONE_IS_ERROR, False:
            condition = f'{ret} == -1'
        case ErrorSentinel.MINUS_ONE_IS_ERROR, True:
            condition = f'{ret} != -1'
        case ErrorSentinel.NULL_IS_ERROR, False:
            condition = f'{ret} is None'
        case ErrorSentinel.NULL_IS_ERROR, True:
            condition = f'{ret} is not None'
        case _:  # pragma: no cover
            raise AssertionError(call.action.returns.sentinel)

    with writer.block(f'if {condition}:'):
        writer.line(on_failure)


def emit_call(writer: 'CodeWriter', symbols: 'SymbolCounter', call: 'ResolvedCall', *,
              ret: str, on_failure: str | None = None, expect_error: bool = False,
              test_name: str | None = None) -> None:
    """Emit one resolved call, binding its result to `ret`.

    In expect-error mode the default error reporting of the session is
    suspended around the call, and the sentinel check is inverted: the
    call must report failure.

    Args:
        writer: Target code writer.
        symbols: Identifier counter of the generation run.
        call: Resolved call.
        ret: Name of the variable receiving the result.
        on_failure: Statement executed when the sentinel check does not
            hold; defaults to the unit failure report of the harness.
        expect_error: Whether the call is expected to fail.
        test_name: Synthesized name of the test, used in error messages.
    """
    name = call.action.name
    if on_failure is None:
        if expect_error:
            on_failure = f'return h.unexpected_success(test, {name!r})'
        else:
            on_failure = f'return h.unexpected_failure(test, {name!r})'

    values: list[str] = []
    for argument in call.arguments:
        values.extend(bind_argument(writer, symbols, argument))

    params = [repr(call.action.call_symbol), _tuple_expression(values)]
    if call.action.optargs:
        optargs = symbols('optargs')
        writer.line(
            f'{optargs} = OptArgs(bitmask={call.bitmask:#x}, '
            f'values={render_mapping(call.present)})',
        )
        params.append(optargs)

    statement = f'{ret} = h.call({', '.join(params)})'
    if expect_error:
        writer.line('h.push_error_handler()')
        with writer.block('try:'):
            writer.line(statement)
        with writer.block('finally:'):
            writer.line('h.pop_error_handler()')
    else:
        writer.line(statement)

    emit_sentinel_check(
        writer, call, ret,
        on_failure=on_failure,
        expect_error=expect_error,
        test_name=test_name,
    )


def emit_invocation(writer: 'CodeWriter', symbols: 'SymbolCounter', registry: 'Registry',
                    invocation: 'Invocation', *, ret: str | None = None,
                    on_failure: str | None = None, expect_error: bool = False,
                    test_name: str | None = None) -> str:
    """Resolve and emit one registry invocation.

    Args:
        writer: Target code writer.
        symbols: Identifier counter of the generation run.
        registry: Registry the invoked action is looked up in.
        invocation: Invocation to emit.
        ret: Name of the result variable; a fresh one is minted by default.
        on_failure: Statement executed when the sentinel check does not hold.
        expect_error: Whether the call is expected to fail.
        test_name: Synthesized name of the test, used in error messages.

    Returns:
        Name of the variable holding the result.

    Raises:
        SchemaDefectError: If the invocation can not be resolved.
    """
    action = registry.get(invocation.action, test_name=test_name)
    call = resolve(action, invocation.literals, test_name=test_name)
    ret = ret or symbols('ret')

    emit_call(
        writer, symbols, call,
        ret=ret,
        on_failure=on_failure,
        expect_error=expect_error,
        test_name=test_name,
    )

    return ret


def _tuple_expression(values: list[str]) -> str:
    """Join expressions into a tuple expression."""
    if len(values) == 1:
        return f'({values[0]},)'

    return f'({', '.join(values)})'
