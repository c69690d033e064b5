import threading
import time

import pytest

from winremote_client import CancelledError, DeadlineExceededError, RunContext
from winremote_client.logger import create_logger
from winremote_client.transport.base import supervise


class RecordingLogger:
    def __init__(self) -> None:
        self.records: list[tuple[int, str]] = []

    def log(self, level: int, msg: str, *args) -> None:
        self.records.append((level, msg % args))


def test_run_context_without_deadline_never_expires() -> None:
    ctx = RunContext()
    assert ctx.remaining() is None
    assert ctx.done() is False
    assert ctx.error() is None
    assert ctx.wait(0.01) is False


def test_run_context_cancel_and_deadline_errors() -> None:
    cancelled = RunContext()
    cancelled.cancel()
    assert isinstance(cancelled.error(), CancelledError)
    assert cancelled.error().kind is None

    expired = RunContext(timeout=0)
    assert expired.done() is True
    assert isinstance(expired.error(), DeadlineExceededError)


def test_run_context_rejects_negative_timeout() -> None:
    with pytest.raises(ValueError):
        RunContext(timeout=-1)


def test_supervise_returns_work_result() -> None:
    result = supervise(RunContext(), lambda: "ok", interrupt=lambda: None, logger=create_logger())
    assert result == "ok"


def test_supervise_propagates_work_errors() -> None:
    def work() -> str:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        supervise(RunContext(), work, interrupt=lambda: None, logger=create_logger())


def test_supervise_skips_work_when_context_is_already_done() -> None:
    ctx = RunContext()
    ctx.cancel()
    calls: list[str] = []
    with pytest.raises(CancelledError):
        supervise(ctx, lambda: calls.append("work"), interrupt=lambda: calls.append("interrupt"), logger=create_logger())
    assert calls == []


def test_supervise_returns_promptly_on_cancellation() -> None:
    release = threading.Event()
    interrupts: list[str] = []
    ctx = RunContext()
    threading.Timer(0.1, ctx.cancel).start()

    started = time.monotonic()
    with pytest.raises(CancelledError):
        supervise(
            ctx,
            lambda: release.wait(10),
            interrupt=lambda: interrupts.append("INT"),
            logger=create_logger(),
        )
    elapsed = time.monotonic() - started
    release.set()

    assert elapsed < 2
    assert interrupts == ["INT"]


def test_supervise_logs_failed_interrupt_and_still_raises_context_error() -> None:
    release = threading.Event()
    recorder = RecordingLogger()

    def interrupt() -> None:
        raise OSError("channel gone")

    with pytest.raises(DeadlineExceededError):
        supervise(
            RunContext(timeout=0.1),
            lambda: release.wait(10),
            interrupt=interrupt,
            logger=create_logger(logger=recorder, level="debug"),
        )
    release.set()
    assert any("channel gone" in message for _, message in recorder.records)


def test_supervise_does_not_wait_for_a_slow_interrupt() -> None:
    release = threading.Event()
    interrupt_started = threading.Event()

    def interrupt() -> None:
        interrupt_started.set()
        release.wait(10)

    started = time.monotonic()
    with pytest.raises(DeadlineExceededError):
        supervise(
            RunContext(timeout=0.1),
            lambda: release.wait(10),
            interrupt=interrupt,
            logger=create_logger(),
        )
    elapsed = time.monotonic() - started
    release.set()

    assert elapsed < 1.5
    assert interrupt_started.is_set()
