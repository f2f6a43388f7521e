"""Execution harness of generated conformance programs.

The harness wraps one session and carries everything generated units
share: call forwarding, the skip filter and capability gates, failure
diagnostics, provisioning of backing stores, unit isolation and the
final close-callback check.

Progress and skip lines go to standard output, failure diagnostics and
warnings to standard error.
"""

from contextlib import contextmanager
from hashlib import file_digest
from pathlib import Path
from signal import SIG_DFL, SIGALRM, alarm, signal
from typing import TYPE_CHECKING, Any

from click import echo

from conformgen.config import RunSettings, build_switches, switch_variable
from conformgen.errors import SetupError

from .host import open_session

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence
    from types import FrameType
    from typing import Self

    from conformgen.values import RuntimeValue

    from .host import OptArgs, Session

    type Unit = Callable[[Harness], bool]

#: Reason reported for units excluded through environment variables.
ENVIRONMENT_REASON = 'environment variable set'

#: Offset of the device letter in device names such as `/dev/sda1`.
DEVICE_LETTER_OFFSET = 5
#: Canonical device letter substituted before comparisons.
DEVICE_LETTER = 's'

SEPARATOR = '-' * 79


def normalize_device(device: str) -> str:
    """Replace the device letter of a device name with a canonical one.

    Device names like `/dev/vda1` and `/dev/hda1` both become `/dev/sda1`,
    so tests tolerate device letters reassigned by the session host.
    Names too short to carry a device letter are returned unchanged.
    """
    if len(device) <= DEVICE_LETTER_OFFSET:
        return device

    return device[:DEVICE_LETTER_OFFSET] + DEVICE_LETTER + device[DEVICE_LETTER_OFFSET + 1:]


def get_key(pairs: 'Sequence[str]', key: str) -> str | None:
    """Look a key up in a flat key/value sequence.

    Returns:
        The value of the first matching key, or `None` if the key is
        not present.
    """
    for position in range(0, len(pairs) - 1, 2):
        if pairs[position] == key:
            return pairs[position + 1]

    return None


def md5sum(path: str) -> str:
    """Hexadecimal MD5 digest of a file."""
    with Path(path).open('rb') as content:
        return file_digest(content, 'md5').hexdigest()


def warn_untested(names: 'Iterable[str]') -> None:
    """Report actions without enabled tests."""
    for name in names:
        echo(f'warning: "{name}" has no tests', err=True)


def setup_failed(error: SetupError) -> int:
    """Report a failed environment setup.

    Returns:
        The exit status of the program.
    """
    echo(f'FAIL: {error}', err=True)

    return 1


@contextmanager
def startup_watchdog(seconds: int) -> 'Iterator[None]':
    """Bound the time spent inside the block.

    The watchdog is cancelled when the block is left.

    Raises:
        SetupError: If the block does not finish in time.
    """
    def expired(signum: int, frame: 'FrameType | None') -> None:  # noqa: ARG001
        raise SetupError(f'session did not start within {seconds} seconds')

    previous = signal(SIGALRM, expired)
    alarm(seconds)
    try:
        yield
    finally:
        alarm(0)
        signal(SIGALRM, previous if previous is not None else SIG_DFL)


class Harness:
    """Session wrapper used by generated units.

    Check helpers return the value the calling unit returns: `True` for
    a pass or a skip, `False` for a failure.
    """

    def __init__(self, session: 'Session', *,
                 settings: RunSettings | None = None) -> None:
        """Initialize the harness.

        Args:
            session: Session of the implementation under test.
            settings: Run settings; read from the environment by default.
        """
        self.session = session
        self.settings = settings or RunSettings()
        self.disks: list[Path] = []
        self.closed = 0

    @classmethod
    def connect(cls, default: str | None, *,
                settings: RunSettings | None = None) -> 'Self':
        """Open a session and wrap it.

        Args:
            default: Session factory baked into the program.
            settings: Run settings; read from the environment by default.

        Raises:
            SetupError: If no session can be opened.
        """
        settings = settings or RunSettings()

        return cls(open_session(settings.session or default), settings=settings)

    # Calls

    def call(self, symbol: str, args: tuple[Any, ...],
             optargs: 'OptArgs | None' = None) -> 'RuntimeValue':
        """Forward a call to the session."""
        return self.session.call(symbol, args, optargs)

    def push_error_handler(self) -> None:
        """Suspend default error reporting of the session."""
        self.session.push_error_handler()

    def pop_error_handler(self) -> None:
        """Restore default error reporting of the session."""
        self.session.pop_error_handler()

    # Gates

    def skip_reason(self, test: str, action: str) -> str | None:
        """Reason to skip a unit because of the environment, if any.

        The inclusion filter is checked first; then the per-unit and the
        per-action exclusion switches, which must be exactly `"1"`.
        """
        if self.settings.test_only is not None and self.settings.test_only not in test:
            return ENVIRONMENT_REASON

        names = (test, f'test_{action}')
        switches = build_switches(names)()
        for name in names:
            if getattr(switches, switch_variable(name).lower()) == '1':
                return ENVIRONMENT_REASON

        return None

    def skipped(self, test: str, action: str) -> bool:
        """Report and confirm a skip requested by the environment."""
        if (reason := self.skip_reason(test, action)) is None:
            return False

        return self.skip(test, reason)

    def available(self, test: str, group: str) -> bool:
        """Check a capability group, reporting a skip when it is missing."""
        if self.session.feature_available((group,)):
            return True

        self.skip(test, f'group {group} not available in daemon')

        return False

    def skip(self, test: str, reason: str) -> bool:
        """Report a skipped unit."""
        echo(f'        {test} skipped (reason: {reason})')

        return True

    # Diagnostics

    def fail(self, test: str, message: str, *args: Any) -> bool:  # noqa: ANN401
        """Report a failed check.

        Args:
            test: Name of the unit.
            message: Printf-style message template.
            args: Values substituted into the template.
        """
        echo(f'{test}: {message % args if args else message}', err=True)

        return False

    def mismatch(self, test: str, expected: Any, actual: Any) -> bool:  # noqa: ANN401
        """Report a value different from the expected one."""
        return self.fail(test, 'expected "%s" but got "%s"', expected, actual)

    def list_failure(self, test: str, message: str, values: 'Iterable[Any]') -> bool:
        """Report a list of the wrong length and echo its elements."""
        self.fail(test, message)
        self.print_strings(values)

        return False

    def expression_false(self, test: str, expression: str) -> bool:
        """Report a `result` expression that does not hold."""
        self.fail(test, 'test failed: expression false: %s', expression)
        if not self.settings.trace:
            echo('Set CONFORMGEN_TRACE=1 to see values returned from API calls.', err=True)

        return False

    def unexpected_failure(self, test: str, action: str) -> bool:
        """Report a call that failed while success was expected."""
        return self.fail(test, '%s: unexpected failure', action)

    def unexpected_success(self, test: str, action: str) -> bool:
        """Report a call that succeeded while failure was expected."""
        return self.fail(test, '%s: expected failure, got success', action)

    @staticmethod
    def print_strings(values: 'Iterable[Any]') -> None:
        """Echo list elements, one per line."""
        for item in values:
            echo(f'\t{item}')

    # Provisioning

    def add_disk(self, filename: str, size: int) -> None:
        """Create a sparse backing store and attach it.

        Raises:
            SetupError: If the store can not be created or attached.
        """
        path = Path(filename)
        try:
            with path.open('wb') as disk:
                disk.truncate(size)
        except OSError as base:
            path.unlink(missing_ok=True)
            raise SetupError(f'can not create {filename}: {base}') from base

        self.disks.append(path)
        if self.session.add_drive(filename) == -1:
            raise SetupError(f'add_drive {filename}')

    def add_drive_ro(self, filename: str) -> None:
        """Attach a read-only image.

        Raises:
            SetupError: If the image can not be attached.
        """
        if self.session.add_drive_ro(filename) == -1:
            raise SetupError(f'add_drive_ro {filename}')

    def launch(self) -> None:
        """Start the session.

        Raises:
            SetupError: If the session does not start.
        """
        if self.session.launch() == -1:
            raise SetupError('launch')

    def remove_disks(self) -> None:
        """Remove every backing store created by this harness."""
        for path in self.disks:
            path.unlink(missing_ok=True)
        self.disks.clear()

    # Execution

    def next_test(self, number: int, total: int, test: str) -> None:
        """Report the start of a unit."""
        if self.settings.verbose:
            echo(SEPARATOR)
        echo(f'{number:3d}/{total:3d} {test}')

    def run_unit(self, unit: 'Unit') -> bool:
        """Run one unit in isolation.

        Exceptions escaping the unit are reported and count as its failure.
        """
        try:
            return bool(unit(self))
        except Exception as error:  # noqa: BLE001
            return self.fail(unit.__name__, 'unexpected error: %s', error)

    def run(self, units: 'Sequence[Unit]') -> int:
        """Run units in order, continuing past failures.

        Returns:
            Number of failed units.
        """
        failed = 0
        for number, unit in enumerate(units, start=1):
            self.next_test(number, len(units), unit.__name__)
            if not self.run_unit(unit):
                echo(f'FAIL: {unit.__name__}')
                failed += 1

        return failed

    def _on_close(self) -> None:
        self.closed += 1

    def close(self) -> bool:
        """Close the session and verify the close callback fired once.

        Backing stores are removed afterwards in any case.

        Returns:
            Whether the close callback fired exactly once.
        """
        self.session.register_close_callback(self._on_close)
        try:
            self.session.close()
        finally:
            self.remove_disks()

        if self.closed != 1:
            echo('FAIL: close callback was not called exactly once', err=True)
            return False

        return True

    @staticmethod
    def summary(failed: int, total: int) -> int:
        """Report the aggregate result.

        Returns:
            The exit status of the program.
        """
        if failed:
            echo(f'***** {failed}/{total} FAILED *****')
            return 1

        return 0
