"""PeriodicJob — run a callable on a fixed interval on a daemon thread.

Cancellation goes through a ``threading.Event``: ``stop()`` sets it, the
worker wakes from its wait and exits. A run already in progress is left
to finish.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import timedelta

logger = logging.getLogger(__name__)


class PeriodicJob:
    """Call *fn* every *interval* until stopped.

    Args:
        name: Thread name, also used in log lines.
        fn: Zero-argument callable. Exceptions are logged; the schedule continues.
        interval: Delay between the end of one run and the start of the next.
        run_immediately: Run *fn* synchronously inside :meth:`start` before
            the worker thread takes over.
    """

    def __init__(
        self,
        name: str,
        fn: Callable[[], object],
        interval: timedelta,
        *,
        run_immediately: bool = True,
    ) -> None:
        if interval.total_seconds() <= 0:
            msg = f"Interval must be positive, got {interval}"
            raise ValueError(msg)
        self._name = name
        self._fn = fn
        self._interval = interval
        self._run_immediately = run_immediately
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def interval(self) -> timedelta:
        return self._interval

    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def start(self) -> bool:
        """Start the schedule. Returns False (no-op) when already running.

        A :meth:`stop` that lands during the immediate run leaves the worker
        thread unstarted.
        """
        with self._lock:
            if self._thread is not None:
                return False
            self._cancel = threading.Event()
            cancel = self._cancel
            thread = self._thread = threading.Thread(
                target=self._loop, args=(cancel,), name=self._name, daemon=True
            )

        if self._run_immediately:
            self._run_once()

        with self._lock:
            if cancel.is_set():
                logger.debug("Stopped %s during its first run", self._name)
                return True
            thread.start()
        logger.debug("Started %s (every %s)", self._name, self._interval)
        return True

    def stop(self, *, wait: bool = True) -> None:
        """Cancel future runs. Safe to call when not running."""
        with self._lock:
            thread = self._thread
            self._cancel.set()
            self._thread = None
            # Only a thread that start() got to launch can be joined.
            started = thread is not None and thread.ident is not None
        if thread is not None and started and wait and thread is not threading.current_thread():
            thread.join()
            logger.debug("Stopped %s", self._name)

    def _loop(self, cancel: threading.Event) -> None:
        while not cancel.wait(self._interval.total_seconds()):
            self._run_once()

    def _run_once(self) -> None:
        try:
            self._fn()
        except Exception:
            logger.exception("Scheduled run of %s failed", self._name)
