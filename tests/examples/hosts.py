"""Scripted session host for generated programs."""

from collections.abc import Callable
from typing import Any

from conformgen.runtime import OptArgs


class FakeSession:
    """Session answering calls from a table of scripted results.

    A scripted result is either a value returned as it is, or a callable
    receiving the positional call arguments. Unscripted actions return
    `0`, the success value of actions returning `Err`.
    """

    def __init__(self, results: dict[str, Any] | None = None, *,
                 features: tuple[str, ...] = (),
                 close_callbacks: int = 1) -> None:
        self.results = dict(results or {})
        self.features = set(features)
        self.close_callbacks = close_callbacks

        self.calls: list[tuple[str, tuple[Any, ...], OptArgs | None]] = []
        self.drives: list[str] = []
        self.readonly: list[str] = []
        self.callbacks: list[Callable[[], None]] = []
        self.handlers: list[bool] = []
        self.suppressed: list[str] = []
        self.launched = False

    def call(self, symbol: str, args: tuple[Any, ...],
             optargs: OptArgs | None = None) -> Any:  # noqa: ANN401
        self.calls.append((symbol, args, optargs))
        if self.handlers:
            self.suppressed.append(symbol)

        result = self.results.get(symbol, 0)
        if callable(result):
            return result(*args)

        return result

    def feature_available(self, groups: tuple[str, ...]) -> bool:
        return set(groups) <= self.features

    def push_error_handler(self) -> None:
        self.handlers.append(True)

    def pop_error_handler(self) -> None:
        self.handlers.pop()

    def register_close_callback(self, callback: Callable[[], None]) -> None:
        self.callbacks.append(callback)

    def add_drive(self, filename: str) -> int:
        self.drives.append(filename)
        return 0

    def add_drive_ro(self, filename: str) -> int:
        self.readonly.append(filename)
        return 0

    def launch(self) -> int:
        self.launched = True
        return 0

    def close(self) -> None:
        for callback in self.callbacks:
            for _ in range(self.close_callbacks):
                callback()

    @property
    def symbols(self) -> list[str]:
        """Symbols of every call, in call order."""
        return [symbol for symbol, _, _ in self.calls]


def default() -> FakeSession:
    """Factory of a session without scripted results."""
    return FakeSession()
