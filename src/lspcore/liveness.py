"""Parent-process liveness probe."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable

logger = logging.getLogger(__name__)


def process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else.
        return True
    except OSError:
        return False
    return True


class LivenessProbe:
    """Checks a process every `interval` seconds and fires `on_dead` once.

    Runs on a daemon thread; `stop()` ends it before the next check.
    """

    def __init__(
        self,
        pid: int,
        on_dead: Callable[[], object],
        *,
        interval: float = 5.0,
        is_alive: Callable[[int], bool] = process_alive,
    ):
        self.pid = pid
        self.interval = interval
        self._on_dead = on_dead
        self._is_alive = is_alive
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run,
            name=f"lspcore-liveness-{self.pid}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            if self._is_alive(self.pid):
                continue
            logger.info("Parent process %s is gone, exiting", self.pid)
            self._stop.set()
            try:
                self._on_dead()
            except Exception:
                logger.exception("Liveness exit handler failed for %s", self.pid)
            return
