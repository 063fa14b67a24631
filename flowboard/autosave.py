"""
Debounced auto-save coordinator.

Editors call ``save(content)`` on every change; the coordinator waits for a
quiet period and then persists only the latest content. Pending content is
flushed immediately when the owning view is disposed.

Lifecycle:
  idle → (debounce window) → saving → saved → (reset timer) → idle
                                    ↘ error  (until the next cycle)
"""
import asyncio
import functools
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Set, Union

logger = logging.getLogger(__name__)

DEFAULT_DELAY_MS = 2000
SAVED_RESET_MS = 2000

SaveCallback = Callable[[Any], Union[Awaitable[None], None]]
StatusListener = Callable[["SaveStatus"], None]

_NOTHING = object()


class SaveStatus(Enum):
    """Observable state of an auto-save cycle."""
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class Lifetime:
    """
    Liveness token for the consumer that owns a saver.

    Can be shared between several savers bound to the same view so that
    closing it silences all of them at once.
    """

    def __init__(self):
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def close(self) -> None:
        self._alive = False


class DebouncedSaver:
    """
    Trailing-edge debounce around an async persist callable.

    Only one payload slot is held; a newer ``save()`` overwrites it. Timers are
    asyncio handles owned by this instance and are cancelled on a new cycle or
    on ``dispose()``.
    """

    def __init__(
        self,
        on_save: SaveCallback,
        delay_ms: int = DEFAULT_DELAY_MS,
        saved_reset_ms: int = SAVED_RESET_MS,
        lifetime: Optional[Lifetime] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        if delay_ms < 0 or saved_reset_ms < 0:
            raise ValueError("delays must be non-negative")
        self._on_save = on_save
        self.delay_ms = delay_ms
        self.saved_reset_ms = saved_reset_ms
        self.lifetime = lifetime or Lifetime()
        self._loop = loop

        self._pending: Any = _NOTHING
        self._timer: Optional[asyncio.TimerHandle] = None
        self._reset_timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Future] = set()
        self._cycle = 0
        self._listeners: List[StatusListener] = []

        self._status = SaveStatus.IDLE
        self._error: Optional[BaseException] = None

    # ── Public state ─────────────────────────────────────────

    @property
    def status(self) -> SaveStatus:
        return self._status

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    @property
    def pending(self) -> bool:
        return self._pending is not _NOTHING

    @property
    def alive(self) -> bool:
        return self.lifetime.alive

    @property
    def in_flight(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a status listener. Returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Entry point ──────────────────────────────────────────

    def save(self, data: Any) -> None:
        """Stage ``data`` and (re)start the debounce timer."""
        if not self.alive:
            logger.debug("save() after dispose ignored")
            return

        self._pending = data
        self._cancel(self._timer)
        # A new cycle supersedes the saved → idle reversion
        self._cancel(self._reset_timer)
        self._reset_timer = None

        loop = self._get_loop()
        self._timer = loop.call_later(self.delay_ms / 1000, self._fire)

    def dispose(self) -> None:
        """
        Tear down the saver. Pending content whose timer has not fired yet is
        handed to ``on_save`` right away; its outcome is not reported.
        """
        if not self.alive:
            return

        try:
            if self._timer is not None and self.pending:
                self._cancel(self._timer)
                self._flush(self._take_pending())
        finally:
            self.lifetime.close()
            self._cancel(self._timer)
            self._cancel(self._reset_timer)
            self._timer = None
            self._reset_timer = None
            self._listeners.clear()

    async def wait_closed(self) -> None:
        """Wait for every outstanding persist call to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Internals ────────────────────────────────────────────

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def _schedule(self, awaitable) -> asyncio.Future:
        loop = self._get_loop()
        if asyncio.iscoroutine(awaitable):
            return loop.create_task(awaitable)
        return asyncio.ensure_future(awaitable, loop=loop)

    def _take_pending(self) -> Any:
        data, self._pending = self._pending, _NOTHING
        return data

    def _flush(self, data: Any) -> None:
        """Fire-and-forget persist used on teardown. Never raises."""
        result = None
        try:
            result = self._on_save(data)
            if inspect.isawaitable(result):
                task = self._schedule(result)
                task.add_done_callback(self._swallow)
                self._track(task)
        except Exception as e:
            # Loop already closed: the coroutine can never run
            if asyncio.iscoroutine(result):
                result.close()
            logger.debug(f"Teardown save failed: {e}")

    def _fire(self) -> None:
        self._timer = None
        if not self.pending or not self.alive:
            return
        data = self._take_pending()
        self._cycle += 1
        cycle = self._cycle

        self._set_status(SaveStatus.SAVING)
        try:
            result = self._on_save(data)
        except Exception as e:
            self._finish(cycle, e)
            return

        if inspect.isawaitable(result):
            task = self._schedule(result)
            task.add_done_callback(functools.partial(self._on_done, cycle))
            self._track(task)
        else:
            self._finish(cycle, None)

    def _on_done(self, cycle: int, task: asyncio.Future) -> None:
        if task.cancelled():
            logger.debug("Auto-save cancelled")
            return
        self._finish(cycle, task.exception())

    def _finish(self, cycle: int, exc: Optional[BaseException]) -> None:
        if exc is not None:
            if self._is_current(cycle):
                logger.warning(f"Auto-save failed: {exc}")
                self._error = exc
                self._set_status(SaveStatus.ERROR)
            else:
                logger.debug(f"Superseded auto-save failed: {exc}")
            return

        if not self._is_current(cycle):
            return
        self._error = None
        self._set_status(SaveStatus.SAVED)
        self._cancel(self._reset_timer)
        self._reset_timer = self._get_loop().call_later(
            self.saved_reset_ms / 1000, self._reset_to_idle
        )

    def _reset_to_idle(self) -> None:
        self._reset_timer = None
        if self.alive and self._status == SaveStatus.SAVED:
            self._set_status(SaveStatus.IDLE)

    def _is_current(self, cycle: int) -> bool:
        # Only the most recently started cycle may touch observable state
        return self.alive and cycle == self._cycle

    def _set_status(self, status: SaveStatus) -> None:
        if self._status == status:
            return
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Status listener raised: {e}")

    def _track(self, task: asyncio.Future) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    def _swallow(task: asyncio.Future) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Teardown save failed: {task.exception()}")

    @staticmethod
    def _cancel(handle: Optional[asyncio.TimerHandle]) -> None:
        if handle is not None:
            handle.cancel()


def create_auto_saver(
    on_save: SaveCallback,
    delay_ms: int = DEFAULT_DELAY_MS,
    **kwargs,
) -> DebouncedSaver:
    """Factory binding one persist callable and one delay to a new saver."""
    return DebouncedSaver(on_save, delay_ms=delay_ms, **kwargs)
