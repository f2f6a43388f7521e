"""Registry names primitive types and validation rules.

This module defines base name patterns and strongly-typed aliases used to
validate action, parameter, struct and capability group identifiers.

Action and parameter names end up as identifiers and environment variable
suffixes in generated programs, so the rules are deliberately narrow.
"""

from re import ASCII
from re import compile as regexp
from typing import Annotated

from pydantic import Field

#: Base pattern for action and parameter identifiers.
_NAME_PATTERN = r'[a-z][a-z0-9_]*'

#: Compiled pattern for action identifiers.
ACTION_PATTERN = regexp(rf'^{_NAME_PATTERN}$', flags=ASCII)

#: Compiled pattern for decimal integer literals.
INTEGER_PATTERN = regexp(r'[+-]?[0-9]+', flags=ASCII)


ActionName = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Action identifier',
        description=(
            'Name of a remotely invokable action. '
            'Action identifiers start with a lower-case letter and may '
            'contain lower-case letters, digits and underscores.'
        ),
        examples=[
            'mkfs',
            'get_e2label',
        ],
    ),
]

ParamName = Annotated[
    str, Field(
        pattern=r'^[a-zA-Z_][a-zA-Z0-9_]*$',
        title='Parameter identifier',
        description='Name of a required or optional action parameter.',
        examples=[
            'device',
            'blocksize',
        ],
    ),
]

StructName = Annotated[
    str, Field(
        pattern=rf'^{_NAME_PATTERN}$',
        title='Struct identifier',
        description='Name of the struct type returned by an action.',
        examples=[
            'statvfs',
            'lvm_pv',
        ],
    ),
]

GroupName = Annotated[
    str, Field(
        pattern=r'^[a-zA-Z0-9][a-zA-Z0-9_\-]*$',
        title='Capability group',
        description=(
            'Name of an optional feature group of the session host. '
            'Tests that require a group are skipped when the host does not '
            'report it as available.'
        ),
        examples=[
            'linuxxattrs',
            'btrfs',
        ],
    ),
]

FieldName = Annotated[
    str, Field(
        pattern=r'^[a-zA-Z_][a-zA-Z0-9_]*$',
        title='Struct field identifier',
        description='Name of a field of a returned struct.',
    ),
]
