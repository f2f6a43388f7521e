"""Program generator.

The generator lowers a whole registry into one standalone Python
program: a header, the module constants describing the environment,
the scratch store provisioning, one unit per test case, the ordered
unit table and the `main` entry point.

Units are grouped by their owning action. Groups run in the reverse of
the declaration order, so the tests of the most recently declared
actions run first; inside a group the test cases keep their order.
"""

from typing import TYPE_CHECKING

from conformgen.config import GeneratorSettings

from .coverage import untested_actions
from .fixtures import emit_commands
from .units import emit_unit
from .writer import CodeWriter, SymbolCounter

if TYPE_CHECKING:
    from conformgen.schema import Action, Registry

#: Backing store holding the scratch filesystem reused by fixtures.
SCRATCH_DEVICE = '/dev/sdb'

RUNTIME_IMPORTS = (
    'Harness',
    'OptArgs',
    'SetupError',
    'get_key',
    'md5sum',
    'normalize_device',
    'setup_failed',
    'startup_watchdog',
    'warn_untested',
)


def execution_order(registry: 'Registry') -> tuple['Action', ...]:
    """Actions in the order their test groups run."""
    return tuple(reversed(registry.actions))


def scratch_commands() -> tuple[tuple[str, ...], ...]:
    """Commands creating the scratch filesystem."""
    return (
        ('part_disk', SCRATCH_DEVICE, 'mbr'),
        ('mkfs', 'ext2', f'{SCRATCH_DEVICE}1'),
    )


def _docstring_text(value: str) -> str:
    """Escape text embedded in a generated docstring."""
    return value.replace('\\', '\\\\').replace('"""', '\\"\\"\\"')


class ProgramGenerator:
    """Generator of conformance programs.

    One generator instance produces one program; the identifier counter
    lives as long as the generation run.
    """

    def __init__(self, registry: 'Registry',
                 settings: GeneratorSettings | None = None) -> None:
        """Initialize the generator.

        Args:
            registry: Registry to lower.
            settings: Generator settings; read from the environment by default.
        """
        self.registry = registry
        self.settings = settings or GeneratorSettings()
        self.writer = CodeWriter()
        self.symbols = SymbolCounter()

    def generate(self) -> str:
        """Generate the program source.

        Returns:
            Python source of the conformance program.

        Raises:
            SchemaDefectError: If any test case can not be lowered.
        """
        self.emit_header()
        self.emit_constants()
        self.emit_provision()

        units = []
        for action in execution_order(self.registry):
            for index, case in enumerate(action.tests):
                self.writer.line()
                self.writer.line()
                units.append(emit_unit(
                    self.writer, self.symbols, self.registry,
                    action, index, case,
                ))

        self.emit_table(units)
        self.emit_main()

        return self.writer.getvalue()

    def emit_header(self) -> None:
        """Emit the module docstring and imports."""
        self.writer.lines(
            f'"""Conformance tests for {_docstring_text(self.settings.title)}.',
            '',
            'This file is generated by conformgen from the action registry.',
            'Do not edit it by hand; edit the registry and regenerate it instead.',
            '"""',
            '',
            'import sys',
            '',
        )
        with self.writer.block('from conformgen.runtime import ('):
            for name in RUNTIME_IMPORTS:
                self.writer.line(f'{name},')
        self.writer.line(')')
        self.writer.line()

    def emit_constants(self) -> None:
        """Emit the environment description and the coverage audit result."""
        disks = ', '.join(
            f'({disk.filename!r}, {disk.size})'
            for disk in self.settings.disks
        )

        self.writer.lines(
            f'SESSION = {self.settings.session!r}',
            f'DISKS = ({disks},)',
            f'REFERENCE_IMAGE = {self.settings.reference_image!r}',
            f'STARTUP_TIMEOUT = {self.settings.startup_timeout}',
            '',
        )

        untested = untested_actions(self.registry)
        if not untested:
            self.writer.line('UNTESTED: tuple[str, ...] = ()')
            return

        with self.writer.block('UNTESTED = ('):
            for name in untested:
                self.writer.line(f'{name!r},')
        self.writer.line(')')

    def emit_provision(self) -> None:
        """Emit creation of the scratch filesystem."""
        self.writer.line()
        self.writer.line()
        with self.writer.block('def provision(h: Harness) -> None:'):
            self.writer.line(f'"""Create an ext2 filesystem on {SCRATCH_DEVICE}1."""')
            for command in scratch_commands():
                emit_commands(
                    self.writer, self.symbols, self.registry, (command,),
                    on_failure=f'raise SetupError({' '.join(command)!r})',
                )

    def emit_table(self, units: list[str]) -> None:
        """Emit the ordered table of units."""
        self.writer.line()
        self.writer.line()
        if not units:
            self.writer.line('TESTS: tuple = ()')
            return

        with self.writer.block('TESTS = ('):
            for name in units:
                self.writer.line(f'{name},')
        self.writer.line(')')

    def emit_main(self) -> None:
        """Emit the program entry point."""
        writer = self.writer
        writer.line()
        writer.line()
        with writer.block('def main() -> int:'):
            writer.line('warn_untested(UNTESTED)')
            writer.line()
            with writer.block('try:'):
                writer.line('h = Harness.connect(SESSION)')
            with writer.block('except SetupError as error:'):
                writer.line('return setup_failed(error)')
            writer.line()
            with writer.block('try:'):
                with writer.block('for filename, size in DISKS:'):
                    writer.line('h.add_disk(filename, size)')
                writer.line('h.add_drive_ro(REFERENCE_IMAGE)')
                with writer.block('with startup_watchdog(STARTUP_TIMEOUT):'):
                    writer.line('h.launch()')
                writer.line('provision(h)')
            with writer.block('except SetupError as error:'):
                writer.line('h.remove_disks()')
                writer.line('return setup_failed(error)')
            writer.line()
            writer.line('failed = h.run(TESTS)')
            with writer.block('if not h.close():'):
                writer.line('return 1')
            writer.line()
            writer.line('return h.summary(failed, len(TESTS))')
        writer.line()
        writer.line()
        with writer.block("if __name__ == '__main__':"):
            writer.line('sys.exit(main())')
