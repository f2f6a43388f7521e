"""Registry models for test cases and their prerequisites.

A test case combines the fixture state it starts from, a prerequisite
that gates whether its body runs at all, and the assertion describing
its invocations and checks.
"""

from typing import Annotated, Any, Literal

from pydantic import Field, field_validator

from conformgen.models import DescribedMixin, SchemaModel
from conformgen.names import GroupName  # noqa: TC001

from .assertions import Assertion  # noqa: TC001
from .kinds import InitState


class Always(SchemaModel):
    """The test body always runs."""

    kind: Literal['always'] = 'always'


class IfAvailable(SchemaModel):
    """The test body runs only when the host provides a capability group."""

    kind: Literal['if_available'] = 'if_available'

    group: GroupName = Field(
        title='Required capability group',
        description='Feature group that must be available in the session host.',
    )


class Disabled(SchemaModel):
    """The test is kept in the registry but never runs."""

    kind: Literal['disabled'] = 'disabled'


Prereq = Annotated[
    Always | IfAvailable | Disabled,
    Field(discriminator='kind'),
]


class TestCase(DescribedMixin, SchemaModel):
    """Single test case of an action.

    The owning action and the position of the case inside the action's
    test list determine the synthesized name of the generated unit.
    """

    __test__ = False

    init: InitState = Field(
        default=InitState.EMPTY,
        title='Fixture state',
        description=(
            'Shared storage state established before the test body runs. '
            'Every state resets the storage first.'
        ),
    )

    prereq: Prereq = Field(
        default_factory=Always,
        title='Prerequisite',
        description=(
            'Gate deciding whether the test body runs: `always`, `disabled`, '
            'or `{kind: if_available, group: <name>}`.'
        ),
    )

    assertion: Assertion = Field(
        title='Assertion',
        description='Invocation sequence and the check applied to its result.',
    )

    @field_validator('prereq', mode='before')
    @classmethod
    def expand_prereq(cls, value: Any) -> Any:  # noqa: ANN401
        """Accept a bare variant name for prerequisites without payload."""
        if isinstance(value, str):
            return {'kind': value}

        return value

    @property
    def enabled(self) -> bool:
        """Whether the prerequisite allows the test to run at all."""
        return not isinstance(self.prereq, Disabled)

    @property
    def group(self) -> str | None:
        """Capability group required by this specific test case."""
        if isinstance(self.prereq, IfAvailable):
            return self.prereq.group

        return None
