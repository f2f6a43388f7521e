"""Assertion definitions for registry test cases.

Every assertion wraps an ordered invocation sequence. Only the result of
the final invocation is checked (the `result` assertion may also look at
the results of the prior invocations); every prior invocation must
itself succeed.

Assertions form a tagged union discriminated by the `kind` field.
"""

from ast import parse
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator, model_validator

from conformgen.models import DescribedMixin, SchemaModel
from conformgen.names import ActionName, FieldName  # noqa: TC001

#: Relational operators allowed in integer comparisons.
type Operator = Literal['<', '<=', '>', '>=', '==', '!=']


def _literal(value: Any) -> Any:  # noqa: ANN401
    """Coerce Python scalars in literal position to their literal spelling.

    Registry sources keep literal text as written; invocations built in
    code may still pass integers and booleans.
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'

    if isinstance(value, int):
        return str(value)

    return value


class Invocation(SchemaModel):
    """One call to an action with concrete literal arguments.

    Invocations are written as flow lists in registry sources, with
    the action name first and the literal arguments after it::

        [mkfs, ext2, /dev/sda1, "", NOARG, "", ""]
    """

    action: ActionName = Field(
        title='Action name',
        description='Name of the invoked action.',
    )

    literals: tuple[str, ...] = Field(
        default=(),
        title='Literal arguments',
        description=(
            'Literal arguments of the call: first every required argument, '
            'then every optional argument, in declaration order.'
        ),
    )

    @model_validator(mode='before')
    @classmethod
    def from_list(cls, data: Any) -> Any:  # noqa: ANN401
        """Accept the flow-list spelling of an invocation."""
        if isinstance(data, (list, tuple)):
            if not data:
                raise ValueError('Invocation must name an action')
            head, *literals = data
            return {
                'action': head,
                'literals': tuple(_literal(item) for item in literals),
            }

        return data

    def __str__(self) -> str:
        """String representation."""
        return ' '.join((self.action, *self.literals))


InvocationSequence = Annotated[
    tuple[Invocation, ...], Field(
        min_length=1,
        title='Invocation sequence',
        description=(
            'Ordered invocations executed by the test. '
            'Every invocation but the last must succeed; '
            'the last one is checked by the assertion.'
        ),
    ),
]


class BaseAssertion(DescribedMixin, SchemaModel):
    """Base class for assertions over an invocation sequence."""

    sequence: InvocationSequence

    @property
    def last(self) -> Invocation:
        """Final invocation of the sequence."""
        return self.sequence[-1]

    @property
    def prior(self) -> tuple[Invocation, ...]:
        """Invocations preceding the final one."""
        return self.sequence[:-1]


class Run(BaseAssertion):
    """Every invocation must succeed; nothing else is checked."""

    kind: Literal['run']


class Result(BaseAssertion):
    """A boolean Python expression over the captured results must hold.

    The result of the final invocation is bound to `ret`; the results of
    prior invocations are bound to `ret1`, `ret2` and so on, counting back
    from the end of the sequence.
    """

    kind: Literal['result']

    expression: str = Field(
        min_length=1,
        title='Boolean expression',
        description='Python expression over `ret`, `ret1`, ... that must be true.',
    )

    @field_validator('expression')
    @classmethod
    def check_expression(cls, value: str) -> str:
        """Reject expressions that are not valid Python."""
        try:
            parse(value, mode='eval')
        except SyntaxError as base:
            raise ValueError(f'Invalid expression: {base.msg}') from base

        return value


class ResultTrue(BaseAssertion):
    """The final result must be truthy."""

    kind: Literal['result_true']


class ResultFalse(BaseAssertion):
    """The final result must be falsy."""

    kind: Literal['result_false']


class LastFail(BaseAssertion):
    """The final invocation must report failure through its sentinel."""

    kind: Literal['last_fail']


class OutputEquals(BaseAssertion):
    """The final result must be exactly equal to a string."""

    kind: Literal['output']
    expected: str


class OutputListEquals(BaseAssertion):
    """The final result must be exactly this list of strings."""

    kind: Literal['output_list']
    expected: tuple[str, ...]


class OutputListOfDevicesEquals(BaseAssertion):
    """As `output_list`, tolerating reassigned device letters."""

    kind: Literal['output_list_of_devices']
    expected: tuple[str, ...]


class OutputIntEquals(BaseAssertion):
    """The final result must be exactly equal to an integer."""

    kind: Literal['output_int']
    expected: int


class OutputIntCompare(BaseAssertion):
    """The final result must compare to an integer as stated."""

    kind: Literal['output_int_op']
    operator: Operator
    expected: int


class OutputTrue(BaseAssertion):
    """The final boolean-like result must be true."""

    kind: Literal['output_true']


class OutputFalse(BaseAssertion):
    """The final boolean-like result must be false."""

    kind: Literal['output_false']


class OutputLengthEquals(BaseAssertion):
    """The final sequence result must have exactly this many elements."""

    kind: Literal['output_length']
    expected: int = Field(ge=0)


class OutputBufferEquals(BaseAssertion):
    """The final buffer must match byte for byte.

    The expected text is encoded as UTF-8; embedded zero bytes are
    significant.
    """

    kind: Literal['output_buffer']
    expected: str

    @property
    def expected_bytes(self) -> bytes:
        """Expected buffer content."""
        return self.expected.encode('utf-8')


class IntEq(SchemaModel):
    """Integer field equality."""

    kind: Literal['int_eq']
    field: FieldName
    expected: int


class IntOp(SchemaModel):
    """Integer field relational comparison."""

    kind: Literal['int_op']
    field: FieldName
    operator: Operator
    expected: int


class StrEq(SchemaModel):
    """String field equality."""

    kind: Literal['str_eq']
    field: FieldName
    expected: str


class FieldsIntEq(SchemaModel):
    """Integer field equality against a field of the reference value `r`."""

    kind: Literal['fields_int_eq']
    field: FieldName
    other: FieldName


class FieldsStrEq(SchemaModel):
    """String field equality against a field of the reference value `r`."""

    kind: Literal['fields_str_eq']
    field: FieldName
    other: FieldName


FieldCheck = Annotated[
    IntEq | IntOp | StrEq | FieldsIntEq | FieldsStrEq,
    Field(discriminator='kind'),
]


class OutputStructEquals(BaseAssertion):
    """Per-field checks of a returned struct."""

    kind: Literal['output_struct']

    checks: tuple[FieldCheck, ...] = Field(
        min_length=1,
        title='Field checks',
        description='Checks applied to the fields of the returned struct, in order.',
    )


class OutputFileMD5Equals(BaseAssertion):
    """The final result must be the MD5 digest of an external file.

    The file is hashed when the generated program runs, not when it is
    generated.
    """

    kind: Literal['output_file_md5']

    path: str = Field(
        min_length=1,
        title='Reference file',
        description='Path of the file whose MD5 digest is expected.',
    )


class OutputDeviceEquals(BaseAssertion):
    """Device-letter normalized string equality."""

    kind: Literal['output_device']
    expected: str


class OutputHashtableEquals(BaseAssertion):
    """Expected keys must be present in the returned flat key/value list."""

    kind: Literal['output_hashtable']

    expected: dict[str, str] = Field(
        min_length=1,
        title='Expected pairs',
        description='Keys that must be present with the given values.',
    )


Assertion = Annotated[
    Run
    | Result
    | ResultTrue
    | ResultFalse
    | LastFail
    | OutputEquals
    | OutputListEquals
    | OutputListOfDevicesEquals
    | OutputIntEquals
    | OutputIntCompare
    | OutputTrue
    | OutputFalse
    | OutputLengthEquals
    | OutputBufferEquals
    | OutputStructEquals
    | OutputFileMD5Equals
    | OutputDeviceEquals
    | OutputHashtableEquals,
    Field(discriminator='kind'),
]


def assertion_label(assertion: BaseAssertion) -> str:
    """Human-readable label of an assertion kind, used in comments."""
    return type(assertion).__name__


__all__ = (
    'Assertion',
    'BaseAssertion',
    'FieldCheck',
    'FieldsIntEq',
    'FieldsStrEq',
    'IntEq',
    'IntOp',
    'Invocation',
    'LastFail',
    'Operator',
    'OutputBufferEquals',
    'OutputDeviceEquals',
    'OutputEquals',
    'OutputFalse',
    'OutputFileMD5Equals',
    'OutputHashtableEquals',
    'OutputIntCompare',
    'OutputIntEquals',
    'OutputLengthEquals',
    'OutputListEquals',
    'OutputListOfDevicesEquals',
    'OutputStructEquals',
    'OutputTrue',
    'Result',
    'ResultFalse',
    'ResultTrue',
    'Run',
    'StrEq',
)
