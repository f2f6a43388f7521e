"""Tests running generated conformance programs against scripted sessions."""

from ast import parse
from hashlib import md5
from pathlib import Path
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any

import pytest

from conformgen.core import ProgramGenerator
from conformgen.runtime import OptArgs

from .examples.hosts import FakeSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from pytest_mock import MockerFixture

    from conformgen.config import GeneratorSettings
    from conformgen.runtime import Harness
    from conformgen.schema import Registry

    type Loader = Callable[[Registry], dict[str, Any]]
    type HarnessFactory = Callable[..., tuple[Harness, FakeSession]]

REFERENCE = b'reference file content\n'


def passing_results() -> dict[str, Any]:
    """Scripted results under which every example test passes."""
    return {
        'exists': lambda path: path != '/missing',
        'cat': lambda path: None if path == '/missing' else 'abcdef\n',
        'ls': ['a', 'b'],
        'list_devices': ['/dev/vda', '/dev/vdb'],
        'blockdev_getss': 512,
        'filesize': 10,
        'statvfs': SimpleNamespace(namemax=255, bsize=4096, bfree=10, bavail=10),
        'read_file': lambda path: b'abc\ndef\nghi' if path == '/known-4' else b'new file contents',
        'checksum': md5(REFERENCE).hexdigest(),
        'findfs_label': '/dev/vda1',
        'inspect': ['UUID', '0000', 'TYPE', 'ext2'],
    }


@pytest.fixture
def program(registry: 'Registry', load_program: 'Loader') -> dict[str, Any]:
    """Provide the loaded program of the example registry."""
    return load_program(registry)


def test_program_is_valid_python(registry: 'Registry', settings: 'GeneratorSettings') -> None:
    """Generated programs parse and describe their environment."""
    source = ProgramGenerator(registry, settings).generate()
    parse(source)

    assert source.startswith('"""Conformance tests for Test API.\n')
    assert "SESSION = 'tests.examples.hosts:default'\n" in source
    assert "DISKS = (('test1.img', 4096), ('test2.img', 2048), ('test3.img', 1024),)\n" in source
    assert "if __name__ == '__main__':\n    sys.exit(main())\n" in source


def test_program_is_deterministic(registry: 'Registry', settings: 'GeneratorSettings') -> None:
    """Generating twice gives identical programs."""
    first = ProgramGenerator(registry, settings).generate()
    second = ProgramGenerator(registry, settings).generate()

    assert first == second


def test_program_order(program: dict[str, Any]) -> None:
    """Groups run in reverse declaration order, tests in declaration order."""
    names = [unit.__name__ for unit in program['TESTS']]

    assert len(names) == 27
    assert names[0] == 'test_write_0'
    assert names[-1] == 'test_blockdev_setrw_0'
    assert names.index('test_exists_0') + 1 == names.index('test_exists_1')
    assert names.index('test_exists_1') + 1 == names.index('test_exists_2')
    assert names.index('test_touch_0') > names.index('test_exists_2')
    assert program['UNTESTED'] == ('version',)


def test_program_main_passes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
                             mocker: 'MockerFixture', capsys: pytest.CaptureFixture,
                             program: dict[str, Any]) -> None:
    """A conforming session passes every unit and leaves no backing stores."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'reference.txt').write_bytes(REFERENCE)
    session = FakeSession(passing_results(), features=('findfs', 'blkid'))
    mocker.patch('conformgen.runtime.harness.open_session', return_value=session)

    assert program['main']() == 0

    out, err = capsys.readouterr()
    assert '  1/ 27 test_write_0' in out
    assert ' 27/ 27 test_blockdev_setrw_0' in out
    assert 'FAILED' not in out
    assert 'test_exists_2 skipped (reason: test disabled)' in out
    assert 'warning: "version" has no tests' in err

    assert session.drives == ['test1.img', 'test2.img', 'test3.img']
    assert session.readonly == ['../data/test.iso']
    assert session.launched
    assert session.symbols[:2] == ['part_disk', 'mkfs']
    assert session.calls[0][1] == ('/dev/sdb', 'mbr')
    assert not list(tmp_path.glob('*.img'))


def test_program_main_reports_failures(tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
                                       mocker: 'MockerFixture', capsys: pytest.CaptureFixture,
                                       program: dict[str, Any]) -> None:
    """Failed units are counted and the run continues past them."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'reference.txt').write_bytes(REFERENCE)
    session = FakeSession(
        {**passing_results(), 'blockdev_getss': 4096},
        features=('findfs', 'blkid'),
    )
    mocker.patch('conformgen.runtime.harness.open_session', return_value=session)

    assert program['main']() == 1

    out, err = capsys.readouterr()
    assert 'FAIL: test_blockdev_getss_0' in out
    assert '***** 1/27 FAILED *****' in out
    assert 'test_blockdev_getss_0: expected 512 but got 4096' in err
    assert ' 27/ 27 test_blockdev_setrw_0' in out


def test_program_main_setup_failure(tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
                                    mocker: 'MockerFixture', capsys: pytest.CaptureFixture,
                                    program: dict[str, Any]) -> None:
    """Failed provisioning aborts the run before any unit."""
    monkeypatch.chdir(tmp_path)
    session = FakeSession({'part_disk': lambda device, _: -1 if device == '/dev/sdb' else 0})
    mocker.patch('conformgen.runtime.harness.open_session', return_value=session)

    assert program['main']() == 1

    out, err = capsys.readouterr()
    assert 'FAIL: part_disk /dev/sdb mbr' in err
    assert 'test_' not in out
    assert session.symbols == ['part_disk']
    assert not list(tmp_path.glob('*.img'))


def test_program_main_close_callback(tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
                                     mocker: 'MockerFixture', capsys: pytest.CaptureFixture,
                                     program: dict[str, Any]) -> None:
    """A close callback that does not fire exactly once fails the run."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'reference.txt').write_bytes(REFERENCE)
    session = FakeSession(passing_results(), features=('findfs', 'blkid'), close_callbacks=2)
    mocker.patch('conformgen.runtime.harness.open_session', return_value=session)

    assert program['main']() == 1

    _, err = capsys.readouterr()
    assert 'close callback was not called exactly once' in err


def test_program_fixture_optargs(program: dict[str, Any],
                                 make_harness: 'HarnessFactory') -> None:
    """Fixture commands pass every optional argument as absent."""
    h, session = make_harness()

    assert program['test_mount_0'](h)

    assert session.symbols == [
        'blockdev_setrw', 'umount_all', 'lvm_remove_all',
        'part_disk', 'mkfs', 'mount', 'umount_all', 'mount',
    ]
    assert session.calls[4] == ('mkfs', ('ext2', '/dev/sda1'), OptArgs(bitmask=0, values={}))


def test_program_present_optargs(program: dict[str, Any],
                                 make_harness: 'HarnessFactory') -> None:
    """Present optional arguments set their bit and carry their value."""
    h, session = make_harness()

    assert program['test_mkfs_0'](h)

    symbol, args, optargs = session.calls[-1]
    assert symbol == 'mkfs'
    assert args == ('ext2', '/dev/sda1')
    assert optargs == OptArgs(bitmask=0b1, values={'blocksize': 4096})


def test_program_buffer_argument(program: dict[str, Any],
                                 make_harness: 'HarnessFactory') -> None:
    """Buffers travel with their explicit size."""
    h, session = make_harness({'read_file': b'new file contents'})

    assert program['test_write_0'](h)

    assert ('write', ('/new', b'new file contents', 17), None) in session.calls


def test_program_fixture_failure(program: dict[str, Any], make_harness: 'HarnessFactory',
                                 capsys: pytest.CaptureFixture) -> None:
    """A failing fixture command fails the unit before its assertion."""
    h, session = make_harness({'mkfs': -1})

    assert not program['test_mount_0'](h)

    _, err = capsys.readouterr()
    assert 'test_mount_0: mkfs: unexpected failure' in err
    assert session.symbols[-1] == 'mkfs'


@pytest.mark.parametrize(('result', 'message'), (
    pytest.param(['a'], 'short list returned from command', id='short'),
    pytest.param(['a', 'b', 'c'], 'extra elements returned from command', id='extra'),
    pytest.param(['a', 'x'], 'expected "b" but got "x"', id='mismatch'),
))
def test_program_list_failures(program: dict[str, Any], make_harness: 'HarnessFactory',
                               capsys: pytest.CaptureFixture, result: list[str],
                               message: str) -> None:
    """Returned lists must match element by element."""
    h, _ = make_harness({'ls': result})

    assert not program['test_ls_0'](h)

    _, err = capsys.readouterr()
    assert f'test_ls_0: {message}' in err


def test_program_list_length(program: dict[str, Any], make_harness: 'HarnessFactory',
                             capsys: pytest.CaptureFixture) -> None:
    """Length checks echo the elements of wrong lists."""
    h, _ = make_harness({'ls': ['a', 'b', 'c']})

    assert not program['test_ls_1'](h)

    out, err = capsys.readouterr()
    assert 'test_ls_1: long list returned' in err
    assert out == '\ta\n\tb\n\tc\n'


@pytest.mark.parametrize(('devices', 'passed'), (
    pytest.param(['/dev/sda', '/dev/sdb'], True, id='same letters'),
    pytest.param(['/dev/vda', '/dev/hdb'], True, id='reassigned letters'),
    pytest.param(['/dev/vda', '/dev/vdc'], False, id='different device'),
))
def test_program_device_lists(program: dict[str, Any], make_harness: 'HarnessFactory',
                              devices: list[str], passed: bool) -> None:
    """Device lists are compared after device letter normalization."""
    h, _ = make_harness({'list_devices': devices})

    assert program['test_list_devices_0'](h) is passed


@pytest.mark.parametrize(('result', 'message'), (
    pytest.param(['UUID', '0000'], 'key "TYPE" not found in hash: expecting "ext2"', id='missing'),
    pytest.param(['TYPE', 'ext3'], 'key "TYPE": expected "ext2" but got "ext3"', id='mismatch'),
))
def test_program_hashtable_failures(program: dict[str, Any], make_harness: 'HarnessFactory',
                                    capsys: pytest.CaptureFixture, result: list[str],
                                    message: str) -> None:
    """Expected keys must be present with their values."""
    h, _ = make_harness({'inspect': result}, features=('blkid',))

    assert not program['test_inspect_0'](h)

    _, err = capsys.readouterr()
    assert f'test_inspect_0: {message}' in err


def test_program_group_unavailable(program: dict[str, Any], make_harness: 'HarnessFactory',
                                   capsys: pytest.CaptureFixture) -> None:
    """Units of missing capability groups are skipped without calls."""
    h, session = make_harness()

    assert program['test_inspect_0'](h)

    out, _ = capsys.readouterr()
    assert 'test_inspect_0 skipped (reason: group blkid not available in daemon)' in out
    assert session.calls == []


def test_program_last_fail(program: dict[str, Any], make_harness: 'HarnessFactory',
                           capsys: pytest.CaptureFixture) -> None:
    """Expected failures must happen, with error reporting suspended."""
    h, session = make_harness({'cat': 'content'})

    assert not program['test_cat_1'](h)

    _, err = capsys.readouterr()
    assert 'test_cat_1: cat: expected failure, got success' in err
    assert session.suppressed == ['cat']
    assert session.handlers == []

    h, _ = make_harness({'cat': None})

    assert program['test_cat_1'](h)


def test_program_struct_failure(program: dict[str, Any], make_harness: 'HarnessFactory',
                                capsys: pytest.CaptureFixture) -> None:
    """Struct fields are checked in order."""
    h, _ = make_harness({'statvfs': SimpleNamespace(namemax=255, bsize=512, bfree=1, bavail=1)})

    assert not program['test_statvfs_0'](h)

    _, err = capsys.readouterr()
    assert 'test_statvfs_0: bsize was 512, expected >= 1024' in err


def test_program_cross_field_failure(program: dict[str, Any], make_harness: 'HarnessFactory',
                                     capsys: pytest.CaptureFixture) -> None:
    """Cross-field checks compare against the reference value."""
    h, _ = make_harness({'statvfs': SimpleNamespace(namemax=255, bsize=4096, bfree=2, bavail=1)})

    assert not program['test_statvfs_0'](h)

    _, err = capsys.readouterr()
    assert 'test_statvfs_0: bfree (2) <> bavail (1)' in err


def test_program_expression_false(program: dict[str, Any], make_harness: 'HarnessFactory',
                                  capsys: pytest.CaptureFixture) -> None:
    """False result expressions are reported with a tracing hint."""
    h, _ = make_harness({'read_file': b'other'})

    assert not program['test_write_0'](h)

    _, err = capsys.readouterr()
    assert "test_write_0: test failed: expression false: ret == b'new file contents'" in err
    assert 'CONFORMGEN_TRACE' in err


def test_program_file_md5(tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
                          program: dict[str, Any], make_harness: 'HarnessFactory') -> None:
    """Checksums are compared with the digest of the reference file at run time."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'reference.txt').write_bytes(REFERENCE)

    h, _ = make_harness({'checksum': md5(REFERENCE).hexdigest()})
    assert program['test_checksum_0'](h)

    h, _ = make_harness({'checksum': md5(b'other').hexdigest()})
    assert not program['test_checksum_0'](h)


@pytest.mark.parametrize(('variable', 'value', 'skipped'), (
    pytest.param('SKIP_TEST_CAT_0', '1', True, id='unit switch'),
    pytest.param('SKIP_TEST_CAT', '1', True, id='action switch'),
    pytest.param('SKIP_TEST_CAT_0', '0', False, id='unit switch off'),
    pytest.param('SKIP_TEST_CAT', 'yes', False, id='action switch not one'),
    pytest.param('SKIP_TEST_CAT_1', '1', False, id='other unit'),
))
def test_program_skip_switches(monkeypatch: pytest.MonkeyPatch, program: dict[str, Any],
                               make_harness: 'HarnessFactory', capsys: pytest.CaptureFixture,
                               variable: str, value: str, skipped: bool) -> None:
    """Exclusion switches must be exactly "1"."""
    monkeypatch.setenv(variable, value)
    h, session = make_harness({'cat': 'abcdef\n'})

    assert program['test_cat_0'](h)

    out, _ = capsys.readouterr()
    assert ('skipped (reason: environment variable set)' in out) is skipped
    assert (session.calls == []) is skipped


def test_program_inclusion_filter(monkeypatch: pytest.MonkeyPatch, program: dict[str, Any],
                                  make_harness: 'HarnessFactory') -> None:
    """Only units whose name contains the inclusion filter run."""
    monkeypatch.setenv('TEST_ONLY', 'ls_')
    h, session = make_harness({'ls': ['a', 'b'], 'cat': 'abcdef\n'})

    assert program['test_cat_0'](h)
    assert session.calls == []

    assert program['test_ls_0'](h)
    assert session.symbols[-1] == 'ls'


def test_program_unit_error(program: dict[str, Any], make_harness: 'HarnessFactory',
                            capsys: pytest.CaptureFixture) -> None:
    """Exceptions escaping a unit fail it without stopping the run."""
    h, _ = make_harness({'statvfs': object()})

    failed = h.run((program['test_statvfs_0'], program['test_blockdev_setrw_0']))

    assert failed == 1
    out, err = capsys.readouterr()
    assert 'FAIL: test_statvfs_0' in out
    assert '  2/  2 test_blockdev_setrw_0' in out
    assert 'test_statvfs_0: unexpected error:' in err
