"""Bounded, newest-first log of deletions and restorations."""

from collections import deque
from decimal import Decimal
from typing import Deque, Iterable, List, Optional

from .schemas import ActivityEntityType, ActivityEvent, ActivityEventType
from .settings import DEFAULT_ACTIVITY_LOG_LIMIT


class ActivityRecorder:
    """Ring buffer of ActivityEvents.

    New events go to the front; once ``limit`` is reached the oldest event is
    dropped silently.

    Example:
        recorder = ActivityRecorder(limit=2)
        recorder.record("deleted", "contribution", "c1", "cash contribution", Decimal("4000"))
        recorder.record("restored", "contribution", "c1", "cash contribution", Decimal("4000"))
        recorder.record("deleted", "contribution", "c1", "cash contribution", Decimal("4000"))
        len(recorder)  # 2, the first event is gone
    """

    def __init__(
        self,
        limit: int = DEFAULT_ACTIVITY_LOG_LIMIT,
        events: Optional[Iterable[ActivityEvent]] = None,
    ):
        if limit <= 0:
            raise ValueError(f"limit must be positive, got {limit}")
        self.limit = limit
        self._events: Deque[ActivityEvent] = deque(list(events or ())[:limit], maxlen=limit)

    def record(
        self,
        event_type: ActivityEventType,
        entity_type: ActivityEntityType,
        entity_id: str,
        entity_name: str,
        slices_affected: Decimal,
        cascade_count: Optional[int] = None,
    ) -> ActivityEvent:
        """Append a new event at the front and return it."""
        event = ActivityEvent(
            type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            entity_name=entity_name,
            slices_affected=slices_affected,
            cascade_count=cascade_count,
        )
        self._events.appendleft(event)
        return event

    @property
    def events(self) -> List[ActivityEvent]:
        """All events, newest first."""
        return list(self._events)

    def recent(self, limit: int = 10) -> List[ActivityEvent]:
        return self.events[:limit]

    def replace(self, events: Iterable[ActivityEvent]) -> None:
        """Swap in a previously persisted log (newest first), trimmed to the limit."""
        self._events = deque(list(events)[: self.limit], maxlen=self.limit)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(self._events)
