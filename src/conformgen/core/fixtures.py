"""Fixture expansion of test case init states.

Every init state expands to a fixed command sequence. Each sequence
starts by resetting shared storage (read-write block device, nothing
mounted, no volume-manager objects), which makes sequential reuse of the
same backing stores safe whatever the previous unit left behind.

Fixture commands are registry invocations too; they name the required
arguments only, and the optional ones are padded with their absent
spellings when the commands are lowered.
"""

from typing import TYPE_CHECKING, assert_never

from conformgen.schema import InitState, Invocation

from .calls import emit_invocation
from .resolver import pad_optional_literals

if TYPE_CHECKING:
    from conformgen.schema import Registry

    from .writer import CodeWriter, SymbolCounter

#: Commands returning shared storage to a known empty state.
RESET: tuple[tuple[str, ...], ...] = (
    ('blockdev_setrw', '/dev/sda'),
    ('umount_all',),
    ('lvm_remove_all',),
)


def expand(init: InitState) -> tuple[str, tuple[tuple[str, ...], ...]]:  # noqa: PLR0911
    """Expand an init state into its fixture command sequence.

    `None` and `Empty` expand to the same reset sequence.

    Args:
        init: Init state of a test case.

    Returns:
        A short description of the fixture and its commands, each
        command being the action name followed by its required literals.
    """
    match init:
        case InitState.NONE | InitState.EMPTY:
            return '', RESET
        case InitState.PARTITION:
            return 'create /dev/sda1', (
                *RESET,
                ('part_disk', '/dev/sda', 'mbr'),
            )
        case InitState.GPT:
            return 'create /dev/sda1', (
                *RESET,
                ('part_disk', '/dev/sda', 'gpt'),
            )
        case InitState.BASIC_FS:
            return 'create ext2 on /dev/sda1', (
                *RESET,
                ('part_disk', '/dev/sda', 'mbr'),
                ('mkfs', 'ext2', '/dev/sda1'),
                ('mount', '/dev/sda1', '/'),
            )
        case InitState.BASIC_FS_ON_LVM:
            return 'create ext2 on /dev/VG/LV', (
                *RESET,
                ('part_disk', '/dev/sda', 'mbr'),
                ('pvcreate', '/dev/sda1'),
                ('vgcreate', 'VG', '/dev/sda1'),
                ('lvcreate', 'LV', 'VG', '8'),
                ('mkfs', 'ext2', '/dev/VG/LV'),
                ('mount', '/dev/VG/LV', '/'),
            )
        case InitState.ISOFS:
            return '', (
                *RESET,
                ('mount_ro', '/dev/sdd', '/'),
            )
        case InitState.SCRATCH_FS:
            return '', (
                *RESET,
                ('mount', '/dev/sdb1', '/'),
            )
        case _:  # pragma: no cover
            assert_never(init)


def fixture_label(init: InitState) -> str:
    """Label of an init state used in comments of generated code."""
    match init:
        case InitState.NONE | InitState.EMPTY:
            return 'InitNone|InitEmpty'
        case _:
            return f'Init{init.value}'


def emit_commands(writer: 'CodeWriter', symbols: 'SymbolCounter', registry: 'Registry',
                  commands: 'tuple[tuple[str, ...], ...]', *,
                  test_name: str | None = None,
                  on_failure: str | None = None) -> None:
    """Emit fixture-style commands written with their required literals only.

    Args:
        writer: Target code writer.
        symbols: Identifier counter of the generation run.
        registry: Registry the commands are looked up in.
        commands: Commands as action name followed by required literals.
        test_name: Synthesized name of the test, used in error messages.
        on_failure: Statement executed when a command fails.

    Raises:
        SchemaDefectError: If a command names an unknown action or does
            not match its required arity.
    """
    for name, *required in commands:
        action = registry.get(name, test_name=test_name)
        invocation = Invocation(
            action=name,
            literals=pad_optional_literals(action, required),
        )
        emit_invocation(
            writer, symbols, registry, invocation,
            on_failure=on_failure,
            test_name=test_name,
        )


def emit_fixture(writer: 'CodeWriter', symbols: 'SymbolCounter', registry: 'Registry',
                 init: InitState, *, test_name: str) -> None:
    """Emit the fixture of one test unit, preceded by a comment line."""
    summary, commands = expand(init)

    comment = f'{fixture_label(init)} for {test_name}'
    if summary:
        comment += f': {summary}'
    writer.comment(comment)

    emit_commands(writer, symbols, registry, commands, test_name=test_name)
