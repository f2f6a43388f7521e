"""Action schema registry.

The registry is the ordered, immutable table of every declared action.
It offers read access only: iteration in declaration order and lookup
by name, where an unknown name is a schema defect rather than a
condition to skip over.
"""

from typing import Self

from pydantic import Field, model_validator

from conformgen.errors import SchemaDefectError
from conformgen.models import SchemaModel

from .actions import Action  # noqa: TC001


class Registry(SchemaModel):
    """Ordered table of actions."""

    actions: tuple[Action, ...] = Field(
        default=(),
        title='Actions',
        description='Every action of the API, in declaration order.',
    )

    @model_validator(mode='after')
    def check_unique_names(self) -> Self:
        """Reject actions declared twice.

        Returns:
            Self.

        Raises:
            ValueError: If two actions share a name.
        """
        seen: set[str] = set()
        for action in self.actions:
            if action.name in seen:
                raise ValueError(f'Action {action.name!r} is declared twice')
            seen.add(action.name)

        return self

    @property
    def names(self) -> tuple[str, ...]:
        """Names of all actions in declaration order."""
        return tuple(action.name for action in self.actions)

    def get(self, name: str, *, test_name: str | None = None) -> Action:
        """Look up an action by name.

        Args:
            name: Name of the action.
            test_name: Synthesized name of the referencing test, if any.

        Returns:
            The declared action.

        Raises:
            SchemaDefectError: If no action with this name is declared.
        """
        for action in self.actions:
            if action.name == name:
                return action

        raise SchemaDefectError(
            f'in test, command {name} was not found',
            action=name,
            test_name=test_name,
        )
