"""Tests for PeriodicJob — interval scheduling with a cancellation token."""

from __future__ import annotations

import threading
import time
from datetime import timedelta

import pytest

from lendctl.infrastructure.scheduler import PeriodicJob


class TestPeriodicJob:
    def test_first_run_is_synchronous(self) -> None:
        calls: list[int] = []
        job = PeriodicJob("t", lambda: calls.append(1), timedelta(hours=1))
        assert job.start()
        try:
            assert calls == [1]
            assert job.is_running()
        finally:
            job.stop()
        assert not job.is_running()

    def test_start_twice_is_noop(self) -> None:
        calls: list[int] = []
        job = PeriodicJob("t", lambda: calls.append(1), timedelta(hours=1))
        job.start()
        try:
            assert job.start() is False
            assert calls == [1]
        finally:
            job.stop()

    def test_repeats_until_stopped(self) -> None:
        ran = threading.Event()
        calls: list[int] = []

        def tick() -> None:
            calls.append(1)
            if len(calls) >= 3:
                ran.set()

        job = PeriodicJob("t", tick, timedelta(milliseconds=10))
        job.start()
        assert ran.wait(5)
        job.stop()
        settled = len(calls)
        time.sleep(0.05)
        assert len(calls) == settled

    def test_stop_is_idempotent(self) -> None:
        job = PeriodicJob("t", lambda: None, timedelta(hours=1))
        job.stop()
        job.start()
        job.stop()
        job.stop()
        assert not job.is_running()

    def test_stop_during_first_run(self) -> None:
        entered = threading.Event()
        release = threading.Event()
        calls: list[int] = []

        def slow() -> None:
            calls.append(1)
            entered.set()
            release.wait(5)

        job = PeriodicJob("t", slow, timedelta(milliseconds=10))
        starter = threading.Thread(target=job.start)
        starter.start()
        assert entered.wait(5)

        job.stop()
        assert not job.is_running()
        release.set()
        starter.join(5)

        time.sleep(0.05)
        assert calls == [1]
        assert not job.is_running()

    def test_errors_do_not_stop_schedule(self) -> None:
        ran = threading.Event()
        calls: list[int] = []

        def flaky() -> None:
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first run fails")
            ran.set()

        job = PeriodicJob("t", flaky, timedelta(milliseconds=10))
        job.start()
        assert ran.wait(5)
        job.stop()

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            PeriodicJob("t", lambda: None, timedelta(0))
