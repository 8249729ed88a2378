"""A retransmission timer that fires periodically until stopped or exhausted."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class Timer:
    """Call ``on_expire`` every ``interval`` seconds with the running expiry count.

    When the count exceeds ``max_retry_times``, ``on_cancel`` is called instead
    and the timer ends. ``stop`` ends it early.
    """

    def __init__(
        self,
        interval: float,
        max_retry_times: int,
        on_expire: Callable[[int], None],
        on_cancel: Callable[[], None],
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = float(interval)
        self._max_retry_times = int(max_retry_times)
        self._expire_times = 0
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(on_expire, on_cancel), daemon=True, name="retransmission-timer"
        )
        self._thread.start()

    @property
    def max_retry_times(self) -> int:
        return self._max_retry_times

    @property
    def expire_times(self) -> int:
        with self._lock:
            return self._expire_times

    def _run(self, on_expire: Callable[[int], None], on_cancel: Callable[[], None]) -> None:
        deadline = time.monotonic()
        try:
            while True:
                deadline += self._interval
                if self._done.wait(max(0.0, deadline - time.monotonic())):
                    return
                with self._lock:
                    self._expire_times += 1
                    count = self._expire_times
                if count > self._max_retry_times:
                    on_cancel()
                    return
                on_expire(count)
        except Exception:
            logger.exception("timer callback failed")

    def stop(self) -> None:
        """Stop the timer; no further callbacks are made once this returns."""
        self._done.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def __enter__(self) -> Timer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()