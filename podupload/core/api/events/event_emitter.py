"""Event emitter implementation using Observer Pattern."""
from typing import Callable, Dict, List, Optional


class EventEmitter:
    """
    Event emitter using Observer Pattern.

    The coordinator uses fingerprints as event names, so every task has its
    own set of listeners (attached callers, owners, subscribers).
    """

    def __init__(self):
        self._events: Dict[str, List[Callable]] = {}

    def on(self, event: str, callback: Callable) -> 'EventEmitter':
        """Registers an event handler."""
        self._events.setdefault(event, []).append(callback)
        return self

    def emit(self, event: str, *args, **kwargs):
        """Calls the handlers registered when the event fired."""
        for callback in tuple(self._events.get(event, ())):
            callback(*args, **kwargs)

    def off(self, event: str, callback: Optional[Callable] = None) -> 'EventEmitter':
        """Removes one handler, or all handlers of ``event``."""
        handlers = self._events.get(event)
        if handlers is None:
            return self

        if callback is not None:
            handlers[:] = [cb for cb in handlers if cb != callback]
        if callback is None or not handlers:
            del self._events[event]
        return self

    def listener_count(self, event: str) -> int:
        return len(self._events.get(event, ()))
