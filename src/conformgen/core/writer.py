"""Low-level Python source emission.

`CodeWriter` collects lines of Python source with indentation management,
and `SymbolCounter` mints collision-free identifiers for emitted values.
One counter belongs to one generation run and is passed explicitly to
every emitter that needs fresh names.
"""

from contextlib import contextmanager
from io import StringIO
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

INDENT = '    '


class SymbolCounter:
    """Monotonic source of synthetic identifiers."""

    def __init__(self, start: int = 0) -> None:
        """Initialize the counter.

        Args:
            start: Last value considered as already used.
        """
        self.value = start

    def __call__(self, prefix: str) -> str:
        """Mint a new identifier such as `_ret12`.

        Args:
            prefix: Readable part of the identifier.

        Returns:
            An identifier that has never been returned before by this counter.
        """
        self.value += 1

        return f'_{prefix}{self.value}'


class CodeWriter:
    """Indentation-aware buffer of Python source lines."""

    def __init__(self) -> None:
        """Initialize an empty buffer at top-level indentation."""
        self._buffer = StringIO()
        self._level = 0

    def line(self, code: str = '') -> None:
        """Emit one line at the current indentation.

        Blank lines are written without trailing whitespace.
        """
        if code:
            self._buffer.write(INDENT * self._level)
            self._buffer.write(code)
        self._buffer.write('\n')

    def lines(self, *codes: str) -> None:
        """Emit several lines at the current indentation."""
        for code in codes:
            self.line(code)

    def comment(self, text: str) -> None:
        """Emit a comment, one line per line of text."""
        for item in text.splitlines():
            self.line(f'# {item}'.rstrip())

    @contextmanager
    def block(self, header: str) -> 'Iterator[CodeWriter]':
        """Emit a block header and indent everything emitted inside.

        Args:
            header: Statement opening the block, including the colon.

        Yields:
            This writer.
        """
        self.line(header)
        self._level += 1
        try:
            yield self
        finally:
            self._level -= 1

    def getvalue(self) -> str:
        """Return everything emitted so far."""
        return self._buffer.getvalue()
