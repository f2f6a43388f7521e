"""Coverage audit of the registry."""

from typing import TYPE_CHECKING
from warnings import warn

from conformgen.errors import CoverageWarning

if TYPE_CHECKING:
    from conformgen.schema import Registry


def tested_actions(registry: 'Registry') -> frozenset[str]:
    """Names heading any invocation of any enabled test case."""
    return frozenset(
        invocation.action
        for action in registry.actions
        for case in action.tests
        if case.enabled
        for invocation in case.assertion.sequence
    )


def untested_actions(registry: 'Registry') -> tuple[str, ...]:
    """Names of the actions no enabled test case invokes, sorted.

    Disabled test cases do not count: an action exercised only by
    disabled tests is reported as untested.
    """
    tested = tested_actions(registry)

    return tuple(sorted(
        action.name
        for action in registry.actions
        if action.name not in tested
    ))


def warn_untested(registry: 'Registry') -> tuple[str, ...]:
    """Emit one `CoverageWarning` per untested action.

    Returns:
        Names of the untested actions.
    """
    untested = untested_actions(registry)
    for name in untested:
        warn(f'"{name}" has no tests', CoverageWarning, stacklevel=2)

    return untested
