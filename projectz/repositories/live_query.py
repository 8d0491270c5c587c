# Rev 0.2.0
"""Live query: re-run a read after every committed write to the project table.

One re-read in flight per subscription. Notifications arriving meanwhile are
coalesced into a single follow-up re-read, so the last write of a burst is
always reflected. After cancel() returns nothing else is delivered.
"""
from __future__ import annotations
import logging
import threading
from concurrent.futures import Executor
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


class SubscriptionState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    CANCELLED = "cancelled"


class LiveQuery(Generic[T]):
    def __init__(
        self,
        repo,
        fetch: Callable[..., T],
        on_change: Callable[[T], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        *,
        executor: Optional[Executor] = None,
    ):
        """
        repo must expose:
          observe(callback) -> unsubscribe callable
        fetch(repo) runs on the executor, or inline in the writer's thread when executor is None.
        """
        self._repo = repo
        self._fetch = fetch
        self._on_change = on_change
        self._on_error = on_error
        self._executor = executor

        self._lock = threading.Lock()          # guards state/running/dirty
        self._delivery = threading.RLock()     # held while a subscriber callback runs
        self._state = SubscriptionState.IDLE
        self._running = False
        self._dirty = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SubscriptionState.ACTIVE

    def start(self) -> "LiveQuery[T]":
        with self._lock:
            if self._state is not SubscriptionState.IDLE:
                raise RuntimeError(f"LiveQuery cannot start from state {self._state.value}")
            self._state = SubscriptionState.ACTIVE
        self._unsubscribe = self._repo.observe(self._on_table_changed)
        self._schedule()
        return self

    def cancel(self) -> None:
        with self._delivery:
            with self._lock:
                if self._state is SubscriptionState.CANCELLED:
                    return
                self._state = SubscriptionState.CANCELLED
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # ---------- scheduling ----------

    def _on_table_changed(self, _table: str) -> None:
        self._schedule()

    def _schedule(self) -> None:
        with self._lock:
            if self._state is not SubscriptionState.ACTIVE:
                return
            if self._running:
                self._dirty = True
                return
            self._running = True

        if self._executor is None:
            self._drain()
            return
        try:
            self._executor.submit(self._drain)
        except RuntimeError:
            # executor shut down (app exiting)
            with self._lock:
                self._running = False
            log.warning("Live query executor unavailable; change not delivered")

    def _drain(self) -> None:
        while True:
            with self._lock:
                self._dirty = False
                if self._state is not SubscriptionState.ACTIVE:
                    self._running = False
                    return
            self._run_once()
            with self._lock:
                if not self._dirty or self._state is not SubscriptionState.ACTIVE:
                    self._running = False
                    return

    def _run_once(self) -> None:
        try:
            value = self._fetch(self._repo)
        except Exception as e:
            log.warning("Live query re-read failed: %s", e, exc_info=True)
            if self._on_error is not None:
                self._deliver(self._on_error, e)
            return
        self._deliver(self._on_change, value)

    def _deliver(self, callback: Callable, arg) -> None:
        with self._delivery:
            if self._state is not SubscriptionState.ACTIVE:
                return
            try:
                callback(arg)
            except Exception:
                log.exception("Live query subscriber %r failed", callback)
