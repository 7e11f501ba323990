"""Invariant markers for lspcore."""

from __future__ import annotations

from typing import NoReturn

from lspcore.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The env payload is diagnostic metadata only.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)
