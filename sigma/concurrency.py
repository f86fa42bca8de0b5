# sigma/concurrency.py
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple, TypeVar

T = TypeVar("T")


class LatestRequestGate:
    """
    Latest-request tracking per key (one key per browser session and action).

    Every new request takes a token from one increasing counter; only the
    holder of the newest token for its key may publish its result. Older
    in-flight requests are discarded when they complete. Keys with nothing
    in flight are dropped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counter = 0
        self._generations: Dict[str, int] = {}

    def begin(self, key: str) -> int:
        with self._lock:
            self._counter += 1
            self._generations[key] = self._counter
            return self._counter

    def is_current(self, key: str, token: int) -> bool:
        with self._lock:
            return self._generations.get(key) == token

    def forget(self, key: str) -> None:
        with self._lock:
            self._generations.pop(key, None)

    def run_latest(
        self,
        key: str,
        fn: Callable[[], T],
        quiet_period: float = 0.0,
    ) -> Tuple[bool, Optional[T]]:
        """
        Run `fn` for a new request on `key`.

        Waits `quiet_period` seconds first and skips `fn` entirely if a newer
        request arrived meanwhile (debounce). Returns (is_latest, result);
        result is None whenever is_latest is False. The key is released once
        its newest request completes.
        """
        token = self.begin(key)
        try:
            if quiet_period > 0:
                time.sleep(quiet_period)
                if not self.is_current(key, token):
                    return False, None

            result = fn()
            if not self.is_current(key, token):
                return False, None
            return True, result
        finally:
            self._release(key, token)

    def _release(self, key: str, token: int) -> None:
        with self._lock:
            if self._generations.get(key) == token:
                del self._generations[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._generations)
