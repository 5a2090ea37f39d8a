"""
Host lifecycle integration.

The host (a UI shell, a server, a test) owns a :class:`HostLifecycle` and
emits ``PAUSED`` / ``RESUMED`` / ``DESTROYED``.  Sessions attach through a
:class:`LifecycleBinder`, which pauses on ``PAUSED`` and releases exactly once
on ``DESTROYED``.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Dict, Optional

LOG = logging.getLogger(__name__)

LifecycleObserver = Callable[["LifecycleEvent"], None]


class LifecycleEvent(str, Enum):
    RESUMED = "resumed"
    PAUSED = "paused"
    DESTROYED = "destroyed"


class Subscription:
    """
    Disposer token returned by :meth:`HostLifecycle.subscribe`.

    Disposing more than once is harmless; only the first call detaches.
    """

    def __init__(self, dispose: Callable[[], None]) -> None:
        self._dispose = dispose
        self._lock = threading.Lock()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        with self._lock:
            return self._disposed

    def dispose(self) -> bool:
        with self._lock:
            if self._disposed:
                return False
            self._disposed = True
        self._dispose()
        return True


class HostLifecycle:
    """
    Minimal lifecycle signal source.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._counter = 0
        self._observers: Dict[int, LifecycleObserver] = {}
        self._state = LifecycleEvent.RESUMED

    @property
    def state(self) -> LifecycleEvent:
        with self._lock:
            return self._state

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def subscribe(self, observer: LifecycleObserver) -> Subscription:
        if not callable(observer):
            raise TypeError("observer must be callable")
        with self._lock:
            self._counter += 1
            token = self._counter
            self._observers[token] = observer
        return Subscription(lambda: self._remove(token))

    def _remove(self, token: int) -> None:
        with self._lock:
            self._observers.pop(token, None)

    def emit(self, event: LifecycleEvent) -> None:
        event = LifecycleEvent(event)
        with self._lock:
            if self._state is LifecycleEvent.DESTROYED:
                LOG.debug("Host already destroyed; dropping %s.", event.value)
                return
            self._state = event
            observers = dict(self._observers)
        for token, observer in observers.items():
            try:
                observer(event)
            except Exception:  # pragma: no cover - observer failures should not stop delivery
                LOG.exception("Lifecycle observer %s failed on %s.", token, event.value)

    def pause(self) -> None:
        self.emit(LifecycleEvent.PAUSED)

    def resume(self) -> None:
        self.emit(LifecycleEvent.RESUMED)

    def destroy(self) -> None:
        self.emit(LifecycleEvent.DESTROYED)


class LifecycleBinder:
    """
    Bind a session's pause and release to host lifecycle signals.

    ``on_destroy`` is invoked at most once for the lifetime of the binder, no
    matter how many hosts it was bound to or how often ``DESTROYED`` arrives.
    Resuming never auto-plays.
    """

    def __init__(
        self,
        *,
        on_pause: Optional[Callable[[], object]] = None,
        on_destroy: Optional[Callable[[], object]] = None,
        name: str = "session",
    ) -> None:
        self._on_pause = on_pause
        self._on_destroy = on_destroy
        self.name = name
        self._lock = threading.Lock()
        self._subscription: Optional[Subscription] = None
        self._host: Optional[HostLifecycle] = None
        self._destroyed = False

    @property
    def is_bound(self) -> bool:
        with self._lock:
            return self._subscription is not None

    @property
    def destroyed(self) -> bool:
        with self._lock:
            return self._destroyed

    def bind_to_host(self, host: HostLifecycle) -> Subscription:
        self.unbind()
        subscription = host.subscribe(self._handle_event)
        with self._lock:
            self._subscription = subscription
            self._host = host
        LOG.debug("Binder %s bound to host lifecycle.", self.name)
        if host.state is LifecycleEvent.DESTROYED:
            self._handle_event(LifecycleEvent.DESTROYED)
        return subscription

    def unbind(self) -> bool:
        """
        Remove the host observer without touching the session.
        """

        with self._lock:
            subscription = self._subscription
            self._subscription = None
            self._host = None
        if subscription is None:
            return False
        subscription.dispose()
        LOG.debug("Binder %s unbound from host lifecycle.", self.name)
        return True

    def _handle_event(self, event: LifecycleEvent) -> None:
        if event is LifecycleEvent.PAUSED:
            if self._on_pause is not None and not self.destroyed:
                self._on_pause()
        elif event is LifecycleEvent.DESTROYED:
            with self._lock:
                if self._destroyed:
                    return
                self._destroyed = True
            LOG.info("Host destroyed; releasing %s.", self.name)
            if self._on_destroy is not None:
                self._on_destroy()
            self.unbind()
