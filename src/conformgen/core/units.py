"""Test unit emitter.

A unit is one generated function per test case. Its body is composed in
a fixed order: skip filter, capability group gates, the disabled check,
the fixture, and finally the assertion with its invocation sequence.
Units return `True` when they pass or are skipped and `False` when they
fail.
"""

from typing import TYPE_CHECKING

from .assertions import AssertionEmitter
from .fixtures import emit_fixture

if TYPE_CHECKING:
    from conformgen.schema import Action, Registry, TestCase

    from .writer import CodeWriter, SymbolCounter


def emit_gate(writer: 'CodeWriter', group: str) -> None:
    """Emit the availability check of a capability group."""
    with writer.block(f'if not h.available(test, {group!r}):'):
        writer.line('return True')


def emit_unit(writer: 'CodeWriter', symbols: 'SymbolCounter', registry: 'Registry',
              action: 'Action', index: int, case: 'TestCase') -> str:
    """Emit one test unit.

    Args:
        writer: Target code writer.
        symbols: Identifier counter of the generation run.
        registry: Registry invoked actions are looked up in.
        action: Action owning the test case.
        index: Position of the test case in the action's test list.
        case: Test case to emit.

    Returns:
        Name of the emitted unit function.

    Raises:
        SchemaDefectError: If the test case can not be lowered.
    """
    test_name = action.test_name(index)

    with writer.block(f'def {test_name}(h: Harness) -> bool:'):
        writer.line(f'test = {test_name!r}')
        with writer.block(f'if h.skipped(test, {action.name!r}):'):
            writer.line('return True')
        writer.line()

        if action.group is not None:
            emit_gate(writer, action.group)
        if case.group is not None:
            emit_gate(writer, case.group)

        if not case.enabled:
            writer.line("return h.skip(test, 'test disabled')")
            return test_name

        emit_fixture(writer, symbols, registry, case.init, test_name=test_name)
        writer.line()

        emitter = AssertionEmitter(writer, symbols, registry, test_name)
        emitter.emit(case.assertion, action=action.name, index=index)

        writer.line('return True')

    return test_name
