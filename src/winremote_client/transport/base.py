"""Common transport abstractions."""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable, Literal, Protocol, TypeVar, runtime_checkable

from ..context import RunContext
from ..logger import BoundLogger

TransportKind = Literal["ssh", "winrm"]

T = TypeVar("T")

# Upper bound on how long a cancellation can go unnoticed.
POLL_INTERVAL = 0.05

# How long a cancelled run waits for its interrupt before returning anyway.
INTERRUPT_GRACE = 0.2


@dataclass(frozen=True)
class TransportOutput:
    stdout: str
    stderr: str
    exit_status: int | None = None


@runtime_checkable
class Transport(Protocol):
    """One remote-execution protocol.

    A transport is owned by exactly one Connection and is not safe for
    concurrent ``run`` calls.
    """

    Kind = TransportKind

    @property
    def kind(self) -> TransportKind: ...

    def run(self, command: str, ctx: RunContext) -> TransportOutput: ...

    def close(self) -> None: ...


def supervise(
    ctx: RunContext,
    work: Callable[[], T],
    *,
    interrupt: Callable[[], None],
    logger: BoundLogger,
    name: str = "winremote-run",
) -> T:
    """Run ``work`` on a worker thread and race it against ``ctx``.

    Returns the result of ``work`` or re-raises its exception. When the context
    finishes first, ``interrupt`` is started once on its own thread (failures
    are logged, not raised) and the context error is raised after at most
    ``INTERRUPT_GRACE`` seconds, without waiting for ``work``.
    """
    error = ctx.error()
    if error is not None:
        raise error

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
    try:
        future: Future[T] = executor.submit(work)
        while True:
            done, _ = wait([future], timeout=_poll_timeout(ctx), return_when=FIRST_COMPLETED)
            if done:
                return future.result()
            error = ctx.error()
            if error is not None:
                logger.info("Run interrupted: %s", error)
                sender = threading.Thread(
                    target=_send_interrupt,
                    args=(interrupt, logger),
                    name=f"{name}-interrupt",
                    daemon=True,
                )
                sender.start()
                sender.join(INTERRUPT_GRACE)
                if sender.is_alive():
                    logger.debug("Interrupt still in flight after %.1fs", INTERRUPT_GRACE)
                raise error
    finally:
        executor.shutdown(wait=False)


def _send_interrupt(interrupt: Callable[[], None], logger: BoundLogger) -> None:
    try:
        interrupt()
    except Exception as exc:
        logger.debug("Interrupt failed: %s", exc)


def _poll_timeout(ctx: RunContext) -> float:
    remaining = ctx.remaining()
    if remaining is None:
        return POLL_INTERVAL
    return min(POLL_INTERVAL, remaining)


__all__ = ["Transport", "TransportKind", "TransportOutput", "supervise"]
