"""Exception markers for lspcore invariants."""

from __future__ import annotations


class NeverThrown(RuntimeError):
    """Raised by `never()` when a path declared unreachable is reached.

    The keyword environment passed to `never()` is kept on the exception so
    the log line that reports it carries the offending values.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})

    def __str__(self) -> str:
        message = super().__str__()
        if not self.env:
            return message
        details = ", ".join(f"{key}={value!r}" for key, value in sorted(self.env.items()))
        return f"{message} ({details})"
