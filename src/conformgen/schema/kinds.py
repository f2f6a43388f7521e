"""Closed variant sets of the registry schema.

Argument kinds, optional argument kinds, return shapes, error sentinels
and fixture states carry no payload, so they are plain string enums.
Code that dispatches on them matches every member explicitly and ends
with `assert_never`, so adding a member makes type checkers point at
every emitter that has to learn about it.
"""

from enum import StrEnum
from typing import assert_never


class ArgKind(StrEnum):
    """Kind of a required, positional action parameter."""

    STRING = 'String'
    OPT_STRING = 'OptString'
    PATHNAME = 'Pathname'
    DEVICE = 'Device'
    MOUNTABLE = 'Mountable'
    DEVICE_OR_PATH = 'DeviceOrPath'
    MOUNTABLE_OR_PATH = 'MountableOrPath'
    KEY = 'Key'
    BUFFER_IN = 'BufferIn'
    STRING_LIST = 'StringList'
    DEVICE_LIST = 'DeviceList'
    INT = 'Int'
    INT64 = 'Int64'
    BOOL = 'Bool'
    FILE_IN = 'FileIn'
    FILE_OUT = 'FileOut'
    POINTER = 'Pointer'


class OptArgKind(StrEnum):
    """Kind of an optional action parameter."""

    BOOL = 'OBool'
    INT = 'OInt'
    INT64 = 'OInt64'
    STRING = 'OString'
    STRING_LIST = 'OStringList'

    @property
    def absent_literal(self) -> str:
        """Literal spelling that leaves a parameter of this kind unset."""
        match self:
            case OptArgKind.BOOL | OptArgKind.INT | OptArgKind.INT64:
                return ''
            case OptArgKind.STRING | OptArgKind.STRING_LIST:
                return 'NOARG'
            case _:  # pragma: no cover
                assert_never(self)


class ErrorSentinel(StrEnum):
    """Failure-signaling convention implied by a return shape."""

    CANNOT_FAIL = 'CannotFail'
    MINUS_ONE_IS_ERROR = 'MinusOneIsError'
    NULL_IS_ERROR = 'NullIsError'


class ReturnShape(StrEnum):
    """Shape of the value returned by an action."""

    ERR = 'Err'
    INT = 'Int'
    INT64 = 'Int64'
    BOOL = 'Bool'
    CONST_STRING = 'ConstString'
    CONST_OPT_STRING = 'ConstOptString'
    STRING = 'String'
    STRING_LIST = 'StringList'
    HASHTABLE = 'Hashtable'
    STRUCT = 'Struct'
    STRUCT_LIST = 'StructList'
    BUFFER_OUT = 'BufferOut'

    @property
    def sentinel(self) -> ErrorSentinel:  # noqa: PLR0911
        """Error sentinel fixed by the shape."""
        match self:
            case ReturnShape.ERR | ReturnShape.INT | ReturnShape.INT64 | ReturnShape.BOOL:
                return ErrorSentinel.MINUS_ONE_IS_ERROR
            case ReturnShape.CONST_OPT_STRING:
                return ErrorSentinel.CANNOT_FAIL
            case (
                ReturnShape.CONST_STRING
                | ReturnShape.STRING
                | ReturnShape.STRING_LIST
                | ReturnShape.HASHTABLE
                | ReturnShape.STRUCT
                | ReturnShape.STRUCT_LIST
                | ReturnShape.BUFFER_OUT
            ):
                return ErrorSentinel.NULL_IS_ERROR
            case _:  # pragma: no cover
                assert_never(self)

    @property
    def has_struct(self) -> bool:
        """Whether the shape refers to a named struct type."""
        return self in (ReturnShape.STRUCT, ReturnShape.STRUCT_LIST)


class InitState(StrEnum):
    """Fixture state established before a test body runs."""

    NONE = 'None'
    EMPTY = 'Empty'
    PARTITION = 'Partition'
    GPT = 'GPT'
    BASIC_FS = 'BasicFS'
    BASIC_FS_ON_LVM = 'BasicFSonLVM'
    ISOFS = 'ISOFS'
    SCRATCH_FS = 'ScratchFS'
