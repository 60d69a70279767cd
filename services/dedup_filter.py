"""Processed-event markers: decide which events have already been notified."""
import json
import logging
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from models.event import SecurityEvent
from services.state_store import StatePartition

logger = logging.getLogger(__name__)

EVENT_PREFIX = 'event:'
DEFAULT_MARKER_TTL = timedelta(hours=24)


class DedupFilter:
    """
    Tracks notified events by ID.

    A marker's presence is all that matters; its value is the serialized
    event, kept only for inspection. Markers expire after marker_ttl.
    """

    def __init__(self, state: StatePartition, marker_ttl: timedelta = DEFAULT_MARKER_TTL):
        self.state = state
        self.marker_ttl = marker_ttl

    @staticmethod
    def _key(event_id: str) -> str:
        return f"{EVENT_PREFIX}{event_id}"

    def is_processed(self, event_id: str) -> bool:
        return self.state.get(self._key(event_id)) is not None

    def partition(self, events: Iterable[SecurityEvent]) -> List[SecurityEvent]:
        """Return the events without a marker, preserving order"""
        return [event for event in events if not self.is_processed(event.id)]

    def mark_processed(self, events: Iterable[SecurityEvent]) -> int:
        """Write a marker for each event. Call only after dispatch has been attempted."""
        count = 0
        for event in events:
            self.state.put(
                self._key(event.id),
                json.dumps(event.to_dict()),
                ttl=self.marker_ttl
            )
            count += 1
        return count

    def list_processed(self, limit: Optional[int] = 100) -> List[Tuple[str, SecurityEvent]]:
        """List (key, event) pairs for live markers, skipping unreadable ones"""
        entries = self.state.list(prefix=EVENT_PREFIX, limit=limit)
        processed = []
        for key, value in entries.items():
            try:
                data = json.loads(value) if isinstance(value, str) else value
                processed.append((key, SecurityEvent.from_dict(data)))
            except (TypeError, ValueError, KeyError) as e:
                logger.warning(f"Skipping unreadable marker {key}: {e}")
        return processed
