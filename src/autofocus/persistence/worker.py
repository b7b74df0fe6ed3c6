# src/autofocus/persistence/worker.py

from __future__ import annotations

"""
Persistence worker.

A small polling loop that:
- drains pending notebook changes,
- writes them through the repository in order,
- on failure keeps the failed change (and everything after it) queued
  and retries later.

The notebook never waits for this loop; a storage failure only delays
durability, it never touches in-memory state.
"""

import asyncio
import contextlib
import logging
import threading
from dataclasses import dataclass

from ..core.changes import ChangeQueue, apply_change
from ..core.ports import NotebookRepo
from ..core.state import AppState

logger = logging.getLogger(__name__)


def flush_pending(queue: ChangeQueue, repo: NotebookRepo) -> bool:
    """
    Write everything queued so far. Returns False if a write failed.

    Order is preserved: on failure the remaining changes go back to the head
    of the queue.
    """
    pending = queue.drain()
    for i, change in enumerate(pending):
        try:
            apply_change(repo, change)
        except Exception:
            logger.exception(
                "Persisting %s failed; %d change(s) kept for retry",
                type(change).__name__,
                len(pending) - i,
            )
            queue.requeue(pending[i:])
            return False
    if pending:
        logger.debug("Persisted %d change(s)", len(pending))
    return True


async def run_persistence_worker(
        queue: ChangeQueue,
        repo: NotebookRepo,
        *,
        interval_seconds: float = 0.5,
        retry_delay_seconds: float = 5.0,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Polling writer.

    Every interval_seconds flush the queue; after a failed write wait
    retry_delay_seconds instead. When stop_event is set, do one last flush
    and return. Cancelling the coroutine also stops it (without the final flush).
    """
    sleep_s = max(0.01, float(interval_seconds))
    retry_s = max(0.01, float(retry_delay_seconds))

    while True:
        ok = flush_pending(queue, repo)
        delay = sleep_s if ok else retry_s

        if stop_event is None:
            await asyncio.sleep(delay)
            continue

        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
        if stop_event.is_set():
            if not flush_pending(queue, repo):
                logger.warning("Persistence stopped with %d unsaved change(s)", len(queue))
            logger.info("Persistence worker stopped.")
            return


@dataclass
class PersistenceBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal persistence stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_persistence_in_background(state: AppState) -> PersistenceBackgroundRunner | None:
    """
    Start the persistence worker in a background thread.

    The console REPL blocks on input(), so the worker gets its own event loop.
    """
    repo = state.repo
    if repo is None:
        logger.info("Persistence disabled, not starting worker.")
        return None

    settings = state.settings
    interval = float(getattr(settings, "persist_interval_seconds", 0.5))
    retry = float(getattr(settings, "persist_retry_delay_seconds", 5.0))

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_persistence_worker(
                    state.changes,
                    repo,
                    interval_seconds=interval,
                    retry_delay_seconds=retry,
                    stop_event=stop_event,
                )
            )
        except Exception:
            logger.exception("Persistence worker crashed.")
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="autofocus-persistence", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Persistence thread did not initialize properly.")
        return None

    logger.info("Persistence background thread started.")
    return PersistenceBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
