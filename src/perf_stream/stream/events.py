"""Synchronous observer registry keyed by event name."""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventEmitter:
    """Maps event names to ordered lists of listeners.

    :meth:`emit` calls every listener for the event in registration order
    before returning. A listener that raises is logged and the remaining
    listeners still run. Listeners registered while an emission is in
    progress are not called for that emission.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        """Register *listener* for *event* and return it."""
        self._listeners.setdefault(event, []).append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register *listener* to be called at most once for *event*."""

        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        _wrapper.listener = listener  # type: ignore[attr-defined]
        self.on(event, _wrapper)
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove the first registration of *listener* for *event*, if any.

        Listeners added with :meth:`once` are matched by the original callable.
        """
        listeners = self._listeners.get(event)
        if not listeners:
            return
        for i, registered in enumerate(listeners):
            if registered == listener or getattr(registered, "listener", None) == listener:
                del listeners[i]
                break
        else:
            return
        if not listeners:
            del self._listeners[event]

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    def emit(self, event: str, *args: Any) -> bool:
        """Call the listeners for *event*. Returns False if there were none."""
        listeners = list(self._listeners.get(event, ()))
        if not listeners:
            return False
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for %r failed", event)
        return True
