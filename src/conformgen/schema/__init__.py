"""Declarative registry schema for API conformance tests.

Defines immutable Pydantic models describing actions, their call
signatures, return types, test cases, prerequisites and assertions.
The module specifies the structural contract of registry sources and
is consumed by the literal resolver and the code emitters.
"""

from .actions import BITMASK_WIDTH, Action, Argument, OptionalArgument, ReturnType
from .assertions import Assertion, BaseAssertion, FieldCheck, Invocation
from .cases import Always, Disabled, IfAvailable, Prereq, TestCase
from .kinds import ArgKind, ErrorSentinel, InitState, OptArgKind, ReturnShape
from .registry import Registry

__all__ = (
    'BITMASK_WIDTH',
    'Action',
    'Always',
    'ArgKind',
    'Argument',
    'Assertion',
    'BaseAssertion',
    'Disabled',
    'ErrorSentinel',
    'FieldCheck',
    'IfAvailable',
    'InitState',
    'Invocation',
    'OptArgKind',
    'OptionalArgument',
    'Prereq',
    'Registry',
    'ReturnShape',
    'ReturnType',
    'TestCase',
)
