"""Registry models for actions and their call signatures.

An action is one remotely invokable operation: its call symbol, ordered
required parameters, ordered optional parameters, return type, optional
capability group and the test cases exercising it.

Actions are pure data. They are constructed once from registry sources,
never modified afterwards, and read by every downstream component.
"""

from typing import Any, Self

from pydantic import Field, field_validator, model_validator

from conformgen.models import DescribedMixin, SchemaModel
from conformgen.names import ActionName, GroupName, ParamName, StructName  # noqa: TC001

from .cases import TestCase  # noqa: TC001
from .kinds import ArgKind, ErrorSentinel, OptArgKind, ReturnShape

#: Width of the optional argument presence bitmask on the wire.
BITMASK_WIDTH = 64


class Argument(SchemaModel):
    """Required, positional action parameter."""

    kind: ArgKind = Field(
        title='Argument kind',
        description='Kind of the parameter; decides how literals are interpreted.',
    )
    name: ParamName


class OptionalArgument(SchemaModel):
    """Optional action parameter.

    The position of the parameter in the action's optional parameter list
    is its bit index in the presence bitmask.
    """

    kind: OptArgKind = Field(
        title='Optional argument kind',
        description='Kind of the optional parameter; decides its presence rule.',
    )
    name: ParamName


class ReturnType(SchemaModel):
    """Return type of an action."""

    shape: ReturnShape = Field(
        title='Return shape',
        description='Shape of the returned value.',
    )

    struct: StructName | None = Field(
        default=None,
        title='Struct name',
        description='Name of the returned struct type, for `Struct` and `StructList` only.',
    )

    @model_validator(mode='after')
    def check_struct(self) -> Self:
        """Require a struct name exactly for struct shapes.

        Returns:
            Self.

        Raises:
            ValueError: If the struct name is missing or superfluous.
        """
        if self.shape.has_struct and self.struct is None:
            raise ValueError(f'Return shape {self.shape} requires a struct name')

        if not self.shape.has_struct and self.struct is not None:
            raise ValueError(f'Return shape {self.shape} does not take a struct name')

        return self

    @property
    def sentinel(self) -> ErrorSentinel:
        """Error sentinel fixed by the return shape."""
        return self.shape.sentinel


class Action(DescribedMixin, SchemaModel):
    """Single action of the registry."""

    name: ActionName = Field(
        title='Action name',
        description='Unique name of the action, used by test invocations.',
    )

    symbol: str | None = Field(
        default=None,
        min_length=1,
        title='Call symbol',
        description='Symbol sent to the session host; defaults to the action name.',
    )

    args: tuple[Argument, ...] = Field(
        default=(),
        title='Required arguments',
        description='Ordered required parameters.',
    )

    optargs: tuple[OptionalArgument, ...] = Field(
        default=(),
        max_length=BITMASK_WIDTH,
        title='Optional arguments',
        description=(
            'Ordered optional parameters. The zero-based position of each '
            'parameter is its bit in the presence bitmask.'
        ),
    )

    returns: ReturnType = Field(
        default_factory=lambda: ReturnType(shape=ReturnShape.ERR),
        title='Return type',
        description=(
            'Return shape name, or a `{shape, struct}` mapping '
            'for `Struct` and `StructList`.'
        ),
    )

    group: GroupName | None = Field(
        default=None,
        title='Capability group',
        description='Feature group the host must provide for any test of this action to run.',
    )

    tests: tuple[TestCase, ...] = Field(
        default=(),
        title='Test cases',
        description='Test cases of the action, run in declaration order.',
    )

    @field_validator('returns', mode='before')
    @classmethod
    def expand_returns(cls, value: Any) -> Any:  # noqa: ANN401
        """Accept a bare shape name for shapes without a struct."""
        if isinstance(value, str):
            return {'shape': value}

        return value

    @model_validator(mode='after')
    def check_parameter_names(self) -> Self:
        """Reject duplicated parameter names.

        Returns:
            Self.

        Raises:
            ValueError: If a parameter name is declared twice.
        """
        seen: set[str] = set()
        for param in (*self.args, *self.optargs):
            if param.name in seen:
                raise ValueError(f'Parameter {param.name!r} is declared twice')
            seen.add(param.name)

        return self

    @property
    def call_symbol(self) -> str:
        """Symbol sent to the session host."""
        return self.symbol or self.name

    @property
    def arity(self) -> int:
        """Combined number of required and optional parameters."""
        return len(self.args) + len(self.optargs)

    def test_name(self, index: int) -> str:
        """Synthesized name of the unit generated for a test case."""
        return f'test_{self.name}_{index}'
