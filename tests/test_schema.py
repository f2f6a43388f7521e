"""Unit tests for registry schema models."""

import pytest
from pydantic import ValidationError

from conformgen.errors import SchemaDefectError
from conformgen.schema import (
    Action,
    Always,
    ArgKind,
    Disabled,
    ErrorSentinel,
    IfAvailable,
    InitState,
    Invocation,
    OptArgKind,
    Registry,
    ReturnShape,
    TestCase,
)


@pytest.mark.parametrize(('shape', 'sentinel'), (
    pytest.param(ReturnShape.ERR, ErrorSentinel.MINUS_ONE_IS_ERROR, id='err'),
    pytest.param(ReturnShape.INT, ErrorSentinel.MINUS_ONE_IS_ERROR, id='int'),
    pytest.param(ReturnShape.INT64, ErrorSentinel.MINUS_ONE_IS_ERROR, id='int64'),
    pytest.param(ReturnShape.BOOL, ErrorSentinel.MINUS_ONE_IS_ERROR, id='bool'),
    pytest.param(ReturnShape.CONST_OPT_STRING, ErrorSentinel.CANNOT_FAIL, id='const opt string'),
    pytest.param(ReturnShape.CONST_STRING, ErrorSentinel.NULL_IS_ERROR, id='const string'),
    pytest.param(ReturnShape.STRING_LIST, ErrorSentinel.NULL_IS_ERROR, id='string list'),
    pytest.param(ReturnShape.HASHTABLE, ErrorSentinel.NULL_IS_ERROR, id='hashtable'),
    pytest.param(ReturnShape.STRUCT_LIST, ErrorSentinel.NULL_IS_ERROR, id='struct list'),
    pytest.param(ReturnShape.BUFFER_OUT, ErrorSentinel.NULL_IS_ERROR, id='buffer out'),
))
def test_sentinel_of_shape(shape: ReturnShape, sentinel: ErrorSentinel) -> None:
    """Every return shape maps to exactly one error sentinel."""
    assert shape.sentinel is sentinel


@pytest.mark.parametrize(('kind', 'literal'), (
    pytest.param(OptArgKind.BOOL, '', id='bool'),
    pytest.param(OptArgKind.INT, '', id='int'),
    pytest.param(OptArgKind.INT64, '', id='int64'),
    pytest.param(OptArgKind.STRING, 'NOARG', id='string'),
    pytest.param(OptArgKind.STRING_LIST, 'NOARG', id='string list'),
))
def test_absent_literal(kind: OptArgKind, literal: str) -> None:
    """Optional argument kinds know their absent spelling."""
    assert kind.absent_literal == literal


def test_action_defaults() -> None:
    """Minimal action documents get defaults for everything else."""
    action = Action.model_validate({'name': 'umount_all'})

    assert action.call_symbol == 'umount_all'
    assert action.returns.shape is ReturnShape.ERR
    assert action.returns.struct is None
    assert action.arity == 0
    assert action.tests == ()
    assert action.test_name(3) == 'test_umount_all_3'


def test_action_signature() -> None:
    """Arguments, optional arguments and return types are parsed."""
    action = Action.model_validate({
        'name': 'mkfs',
        'symbol': 'mkfs_opts',
        'args': [
            {'kind': 'String', 'name': 'fstype'},
            {'kind': 'Device', 'name': 'device'},
        ],
        'optargs': [
            {'kind': 'OInt', 'name': 'blocksize'},
        ],
        'returns': {'shape': 'Struct', 'struct': 'statvfs'},
    })

    assert action.call_symbol == 'mkfs_opts'
    assert [arg.kind for arg in action.args] == [ArgKind.STRING, ArgKind.DEVICE]
    assert action.optargs[0].kind is OptArgKind.INT
    assert action.returns.shape is ReturnShape.STRUCT
    assert action.returns.struct == 'statvfs'
    assert action.arity == 3


@pytest.mark.parametrize('document', (
    pytest.param({'name': 'Mkfs'}, id='upper case name'),
    pytest.param({'name': 'mkfs', 'returns': 'Struct'}, id='struct without name'),
    pytest.param({'name': 'mkfs', 'returns': {'shape': 'Int', 'struct': 'x'}}, id='superfluous struct'),
    pytest.param({'name': 'mkfs', 'returns': 'Float'}, id='unknown shape'),
    pytest.param({'name': 'mkfs', 'args': [{'kind': 'Handle', 'name': 'x'}]}, id='unknown kind'),
    pytest.param({'name': 'mkfs', 'optargs': [{'kind': 'String', 'name': 'x'}]}, id='required kind as optional'),
    pytest.param({
        'name': 'mkfs',
        'args': [{'kind': 'String', 'name': 'x'}],
        'optargs': [{'kind': 'OInt', 'name': 'x'}],
    }, id='duplicate parameter'),
    pytest.param({
        'name': 'mkfs',
        'optargs': [{'kind': 'OBool', 'name': f'flag{index}'} for index in range(65)],
    }, id='too many optional arguments'),
    pytest.param({'name': 'mkfs', 'unknown': True}, id='extra field'),
))
def test_invalid_action(document: dict) -> None:
    """Structurally invalid actions are rejected."""
    with pytest.raises(ValidationError):
        Action.model_validate(document)


def test_invocation_list_form() -> None:
    """Invocations accept the flow list spelling and coerce scalars."""
    invocation = Invocation.model_validate(['mkfs', 'ext2', '/dev/sda1', 4096, True, False, ''])

    assert invocation.action == 'mkfs'
    assert invocation.literals == ('ext2', '/dev/sda1', '4096', 'true', 'false', '')
    assert str(invocation) == 'mkfs ext2 /dev/sda1 4096 true false '


@pytest.mark.parametrize('value', (
    pytest.param([], id='empty'),
    pytest.param(['mkfs', 1.5], id='float literal'),
    pytest.param(['mkfs', None], id='null literal'),
))
def test_invalid_invocation(value: list) -> None:
    """Invocations need an action name and string-like literals."""
    with pytest.raises(ValidationError):
        Invocation.model_validate(value)


def test_test_case_defaults() -> None:
    """Test cases default to the empty fixture and no prerequisite."""
    case = TestCase.model_validate({
        'assertion': {'kind': 'run', 'sequence': [['umount_all']]},
    })

    assert case.init is InitState.EMPTY
    assert isinstance(case.prereq, Always)
    assert case.enabled
    assert case.group is None


@pytest.mark.parametrize(('prereq', 'expected', 'enabled', 'group'), (
    pytest.param('always', Always, True, None, id='always'),
    pytest.param('disabled', Disabled, False, None, id='disabled'),
    pytest.param({'kind': 'if_available', 'group': 'btrfs'}, IfAvailable, True, 'btrfs', id='if available'),
))
def test_test_case_prereq(prereq: object, expected: type, enabled: bool, group: str | None) -> None:
    """Prerequisites accept a bare kind for variants without payload."""
    case = TestCase.model_validate({
        'prereq': prereq,
        'assertion': {'kind': 'run', 'sequence': [['umount_all']]},
    })

    assert isinstance(case.prereq, expected)
    assert case.enabled is enabled
    assert case.group == group


@pytest.mark.parametrize('assertion', (
    pytest.param({'kind': 'run', 'sequence': []}, id='empty sequence'),
    pytest.param({'kind': 'result', 'sequence': [['a']], 'expression': 'ret =='}, id='bad expression'),
    pytest.param({'kind': 'output_int_op', 'sequence': [['a']], 'operator': '=>', 'expected': 1}, id='bad operator'),
    pytest.param({'kind': 'output_length', 'sequence': [['a']], 'expected': -1}, id='negative length'),
    pytest.param({'kind': 'output_struct', 'sequence': [['a']], 'checks': []}, id='no checks'),
    pytest.param({'kind': 'output_hashtable', 'sequence': [['a']], 'expected': {}}, id='no pairs'),
    pytest.param({'kind': 'output_all', 'sequence': [['a']]}, id='unknown kind'),
))
def test_invalid_assertion(assertion: dict) -> None:
    """Malformed assertions are rejected while loading."""
    with pytest.raises(ValidationError):
        TestCase.model_validate({'assertion': assertion})


def test_buffer_expected_bytes() -> None:
    """Expected buffers are encoded as UTF-8, keeping zero bytes."""
    case = TestCase.model_validate({
        'assertion': {
            'kind': 'output_buffer',
            'sequence': [['read_file', '/x']],
            'expected': 'a\x00b',
        },
    })

    assert case.assertion.expected_bytes == b'a\x00b'


def test_registry_lookup() -> None:
    """Registries keep declaration order and look actions up by name."""
    registry = Registry(actions=(
        Action(name='mkfs'),
        Action(name='mount'),
    ))

    assert registry.names == ('mkfs', 'mount')
    assert registry.get('mount').name == 'mount'


def test_registry_unknown_action() -> None:
    """Unknown actions are schema defects naming the referencing test."""
    registry = Registry(actions=(Action(name='mkfs'),))

    with pytest.raises(SchemaDefectError, match='command mkfs_opts was not found') as error:
        registry.get('mkfs_opts', test_name='test_mkfs_0')

    assert error.value.action == 'mkfs_opts'
    assert error.value.test_name == 'test_mkfs_0'


def test_registry_duplicate_action() -> None:
    """Actions can not be declared twice."""
    with pytest.raises(ValidationError, match='declared twice'):
        Registry(actions=(Action(name='mkfs'), Action(name='mkfs')))
