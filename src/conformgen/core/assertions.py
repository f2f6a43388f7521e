"""Assertion code emitters.

Every assertion kind lowers its invocation sequence through the call
emitter and then emits the check of the final result. A failed check
reports the test name together with the expected and the actual value
through the harness, and makes the unit return its failure signal; it
never aborts the program.

Values written by registry authors are always passed to the harness as
arguments and never spliced into its message templates.
"""

from typing import TYPE_CHECKING, assert_never

from conformgen.errors import SchemaDefectError
from conformgen.schema import ReturnShape
from conformgen.schema.assertions import (
    FieldsIntEq,
    FieldsStrEq,
    IntEq,
    IntOp,
    LastFail,
    OutputBufferEquals,
    OutputDeviceEquals,
    OutputEquals,
    OutputFalse,
    OutputFileMD5Equals,
    OutputHashtableEquals,
    OutputIntCompare,
    OutputIntEquals,
    OutputLengthEquals,
    OutputListEquals,
    OutputListOfDevicesEquals,
    OutputStructEquals,
    OutputTrue,
    Result,
    ResultFalse,
    ResultTrue,
    Run,
    StrEq,
    assertion_label,
)
from conformgen.values import render

from .calls import emit_invocation

if TYPE_CHECKING:
    from conformgen.schema import Assertion, BaseAssertion, FieldCheck, Registry

    from .writer import CodeWriter, SymbolCounter

#: Variable receiving the result of the final invocation.
RESULT = 'ret'
#: Variable receiving the reference value of cross-field struct checks.
REFERENCE = 'r'


class AssertionEmitter:
    """Emitter of one test case assertion.

    Args:
        writer: Target code writer.
        symbols: Identifier counter of the generation run.
        registry: Registry invoked actions are looked up in.
        test_name: Synthesized name of the test unit.
    """

    def __init__(self, writer: 'CodeWriter', symbols: 'SymbolCounter',
                 registry: 'Registry', test_name: str) -> None:
        self.writer = writer
        self.symbols = symbols
        self.registry = registry
        self.test_name = test_name

    def emit(self, assertion: 'Assertion', *, action: str, index: int) -> None:  # noqa: C901, PLR0912
        """Emit the invocation sequence and check of an assertion.

        Args:
            assertion: Assertion of the test case.
            action: Name of the action owning the test case.
            index: Position of the test case in the action's test list.

        Raises:
            SchemaDefectError: If the assertion can not be lowered.
        """
        self.writer.comment(f'{assertion_label(assertion)} for {action} ({index})')

        match assertion:
            case Run():
                self.sequence(assertion)
            case Result():
                self.result(assertion)
            case ResultTrue():
                ret = self.sequence(assertion)[-1]
                self.check(
                    f'not {ret}',
                    "test failed: expected last command %s to return 'true' but it returned 'false'",
                    repr(assertion.last.action),
                )
            case ResultFalse():
                ret = self.sequence(assertion)[-1]
                self.check(
                    ret,
                    "test failed: expected last command %s to return 'false' but it returned 'true'",
                    repr(assertion.last.action),
                )
            case LastFail():
                self.sequence(assertion, expect_error=True)
            case OutputEquals():
                ret = self.sequence(assertion)[-1]
                self.mismatch(f'{ret} != {render(assertion.expected)}',
                              render(assertion.expected), ret)
            case OutputListEquals():
                ret = self.sequence(assertion)[-1]
                self.strings(ret, assertion.expected)
            case OutputListOfDevicesEquals():
                ret = self.sequence(assertion)[-1]
                self.strings(ret, assertion.expected, devices=True)
            case OutputIntEquals():
                ret = self.sequence(assertion)[-1]
                self.check(f'{ret} != {assertion.expected}',
                           f'expected {assertion.expected} but got %s', ret)
            case OutputIntCompare():
                ret = self.sequence(assertion)[-1]
                self.check(f'not ({ret} {assertion.operator} {assertion.expected})',
                           f'expected {assertion.operator} {assertion.expected} but got %s', ret)
            case OutputTrue():
                ret = self.sequence(assertion)[-1]
                self.check(f'not {ret}', 'expected true, got false')
            case OutputFalse():
                ret = self.sequence(assertion)[-1]
                self.check(ret, 'expected false, got true')
            case OutputLengthEquals():
                ret = self.sequence(assertion)[-1]
                self.length(ret, assertion.expected)
            case OutputBufferEquals():
                ret = self.sequence(assertion)[-1]
                self.buffer(ret, assertion.expected_bytes)
            case OutputStructEquals():
                self.struct(assertion)
            case OutputFileMD5Equals():
                expected = self.symbols('md5')
                self.writer.line(f'{expected} = md5sum({render(assertion.path)})')
                ret = self.sequence(assertion)[-1]
                self.mismatch(f'{ret} != {expected}', expected, ret)
            case OutputDeviceEquals():
                ret = self.sequence(assertion)[-1]
                device = self.symbols('dev')
                self.writer.line(f'{device} = normalize_device({ret})')
                self.mismatch(f'{device} != {render(assertion.expected)}',
                              render(assertion.expected), device)
            case OutputHashtableEquals():
                ret = self.sequence(assertion)[-1]
                self.hashtable(ret, assertion.expected)
            case _:  # pragma: no cover
                assert_never(assertion)

    def sequence(self, assertion: 'BaseAssertion', *,
                 expect_error: bool = False) -> list[str]:
        """Emit the invocation sequence of an assertion.

        Prior results are bound to fresh variables; the final result is
        bound to `ret`.

        Returns:
            Result variables in invocation order.
        """
        results = [
            emit_invocation(
                self.writer, self.symbols, self.registry, invocation,
                test_name=self.test_name,
            )
            for invocation in assertion.prior
        ]
        results.append(emit_invocation(
            self.writer, self.symbols, self.registry, assertion.last,
            ret=RESULT,
            expect_error=expect_error,
            test_name=self.test_name,
        ))

        return results

    def result(self, assertion: Result) -> None:
        """Emit a `result` assertion.

        Every result of the sequence stays available to the expression:
        the final one as `ret`, the prior ones as `ret1`, `ret2` and so on,
        counting back from the end.
        """
        total = len(assertion.sequence)
        for position, invocation in enumerate(assertion.sequence):
            back = total - position - 1
            emit_invocation(
                self.writer, self.symbols, self.registry, invocation,
                ret=f'{RESULT}{back}' if back else RESULT,
                test_name=self.test_name,
            )

        with self.writer.block(f'if not ({assertion.expression}):'):
            self.writer.line(f'return h.expression_false(test, {assertion.expression!r})')

    def struct(self, assertion: OutputStructEquals) -> None:
        """Emit the field checks of an `output_struct` assertion.

        Cross-field checks compare against `r`, the result of the
        invocation preceding the final one, or the final result itself
        when the sequence has a single invocation.

        Raises:
            SchemaDefectError: If the final action does not return a struct.
        """
        action = self.registry.get(assertion.last.action, test_name=self.test_name)
        if action.returns.shape is not ReturnShape.STRUCT:
            raise SchemaDefectError(
                f'function {action.name} does not return a struct',
                action=action.name,
                test_name=self.test_name,
            )

        results = self.sequence(assertion)
        ret = results[-1]
        if any(isinstance(check, (FieldsIntEq, FieldsStrEq)) for check in assertion.checks):
            self.writer.line(f'{REFERENCE} = {results[-2] if len(results) > 1 else ret}')

        for check in assertion.checks:
            self.field(ret, check)

    def field(self, ret: str, check: 'FieldCheck') -> None:
        """Emit one struct field check."""
        value = f'{ret}.{check.field}'
        match check:
            case IntEq():
                self.check(f'{value} != {check.expected}',
                           f'{check.field} was %s, expected {check.expected}', value)
            case IntOp():
                self.check(f'not ({value} {check.operator} {check.expected})',
                           f'{check.field} was %s, expected {check.operator} {check.expected}',
                           value)
            case StrEq():
                self.check(f'{value} != {render(check.expected)}',
                           f'{check.field} was "%s", expected "%s"',
                           value, render(check.expected))
            case FieldsIntEq():
                other = f'{REFERENCE}.{check.other}'
                self.check(f'{value} != {other}',
                           f'{check.field} (%s) <> {check.other} (%s)', value, other)
            case FieldsStrEq():
                other = f'{REFERENCE}.{check.other}'
                self.check(f'{value} != {other}',
                           f'{check.field} ("%s") <> {check.other} ("%s")', value, other)
            case _:  # pragma: no cover
                assert_never(check)

    def strings(self, ret: str, expected: tuple[str, ...], *, devices: bool = False) -> None:
        """Emit element-wise comparison of a returned string list."""
        for position, item in enumerate(expected):
            with self.writer.block(f'if len({ret}) <= {position}:'):
                self.writer.line(
                    f"return h.list_failure(test, 'short list returned from command', {ret})",
                )
            value = f'{ret}[{position}]'
            if devices:
                value = self.symbols('dev')
                self.writer.line(f'{value} = normalize_device({ret}[{position}])')
            self.mismatch(f'{value} != {render(item)}', render(item), value)

        with self.writer.block(f'if len({ret}) > {len(expected)}:'):
            self.writer.line(
                f"return h.list_failure(test, 'extra elements returned from command', {ret})",
            )

    def length(self, ret: str, expected: int) -> None:
        """Emit the exact length check of a returned list."""
        with self.writer.block(f'if len({ret}) < {expected}:'):
            self.writer.line(f"return h.list_failure(test, 'short list returned', {ret})")
        with self.writer.block(f'if len({ret}) > {expected}:'):
            self.writer.line(f"return h.list_failure(test, 'long list returned', {ret})")

    def buffer(self, ret: str, expected: bytes) -> None:
        """Emit the size and content check of a returned buffer."""
        self.check(f'len({ret}) != {len(expected)}',
                   f'returned size of buffer wrong, expected {len(expected)} but got %s',
                   f'len({ret})')
        self.mismatch(f'{ret} != {render(expected)}', render(expected), ret)

    def hashtable(self, ret: str, expected: dict[str, str]) -> None:
        """Emit key lookups in a returned flat key/value list."""
        for key, item in expected.items():
            value = self.symbols('value')
            self.writer.line(f'{value} = get_key({ret}, {render(key)})')
            self.check(f'{value} is None',
                       'key "%s" not found in hash: expecting "%s"',
                       render(key), render(item))
            self.check(f'{value} != {render(item)}',
                       'key "%s": expected "%s" but got "%s"',
                       render(key), render(item), value)

    def check(self, condition: str, message: str, *args: str) -> None:
        """Emit a condition that fails the unit with a message when true.

        Args:
            condition: Failure condition expression.
            message: Printf-style message template.
            args: Expressions substituted into the template at run time.
        """
        params = ', '.join(('test', repr(message), *args))
        with self.writer.block(f'if {condition}:'):
            self.writer.line(f'return h.fail({params})')

    def mismatch(self, condition: str, expected: str, actual: str) -> None:
        """Emit a condition reporting an expected/actual mismatch when true."""
        with self.writer.block(f'if {condition}:'):
            self.writer.line(f'return h.mismatch(test, {expected}, {actual})')
