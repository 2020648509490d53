"""
Event system for build lifecycle events.

Each Builder owns its own bus, so callers can observe phases and progress
without configuring logging.
"""
from typing import Dict, List, Callable, Any
import logging

logger = logging.getLogger(__name__)

# Event names
PHASE = "phase"
PROGRESS = "progress"
MODULE_DOWNLOADED = "module_downloaded"
SNAPSHOT_WRITTEN = "snapshot_written"
ERROR = "error"


class EventBus:
    """
    Simple event bus for build events.

    Events are delivered synchronously in the emitting thread.
    """

    def __init__(self):
        self.listeners: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: Event name (e.g., 'phase', 'progress')
            callback: Function to call when event is emitted
        """
        if event_type not in self.listeners:
            self.listeners[event_type] = []

        self.listeners[event_type].append(callback)
        logger.debug(f"Subscribed to event: {event_type}")

    def unsubscribe(self, event_type: str, callback: Callable) -> None:
        if event_type in self.listeners:
            try:
                self.listeners[event_type].remove(callback)
            except ValueError:
                logger.warning(f"Callback not found for event: {event_type}")

    def emit(self, event_type: str, **data: Any) -> None:
        """
        Emit an event to all subscribers.

        A failing subscriber is logged and skipped; it never aborts the build.

        Args:
            event_type: Event name
            **data: Event data as keyword arguments
        """
        for callback in list(self.listeners.get(event_type, [])):
            try:
                callback(**data)
            except Exception as e:
                logger.error(f"Error in event callback for {event_type}: {e}", exc_info=True)
