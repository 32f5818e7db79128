from dataclasses import dataclass
from typing import Callable, Dict, List
import inspect
import logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of a run, for periodic progress lines."""
    processed: int
    pending_total: int
    elapsed: float

    @property
    def percent(self) -> float:
        if self.pending_total <= 0:
            return 100.0
        return (self.processed / self.pending_total) * 100

    @property
    def rate(self) -> float:
        if self.elapsed <= 0:
            return 0.0
        return self.processed / self.elapsed

    @property
    def eta_seconds(self) -> float:
        rate = self.rate
        if rate <= 0:
            return 0.0
        return max(self.pending_total - self.processed, 0) / rate


class EventEmitter:
    """Simple event emitter for migration events."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if callback in self._listeners.get(event_name, []):
            self._listeners[event_name].remove(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners."""
        for callback in self._listeners.get(event_name, [])[:]:  # Copy list to avoid modification during iteration
            try:
                result = callback(*args, **kwargs)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in event listener for {event_name}: {e}")
