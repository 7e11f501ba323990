from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from lspcore.config import ServerConfig
from lspcore.core import ServerCore
from lspcore.feature import BaseFeatureHandler
from tests.lsp_helpers import FakeClient, FakeTerminate


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def terminate() -> FakeTerminate:
    return FakeTerminate()


@pytest.fixture
def make_core(client: FakeClient, terminate: FakeTerminate):
    cores: list[ServerCore] = []

    def _make(handler: Any = None, **kwargs: Any) -> ServerCore:
        kwargs.setdefault("config", ServerConfig())
        kwargs.setdefault("is_alive", lambda pid: True)
        core = ServerCore(
            handler if handler is not None else BaseFeatureHandler(),
            client,
            terminate=terminate,
            **kwargs,
        )
        cores.append(core)
        return core

    yield _make
    for core in cores:
        core.close()
