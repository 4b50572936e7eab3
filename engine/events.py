"""Audit trail of a backtest run.

The broker records every order submission, fill and rejection; the
backtester records feed connection, feed failures and the end of the run.
Timestamps are simulation milliseconds, so the log replays in clock order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import pandas as pd


class EventType(str, Enum):
    FEED_CONNECTED = "FEED_CONNECTED"
    FEED_ERROR = "FEED_ERROR"
    ORDER_SUBMITTED = "ORDER_SUBMITTED"
    ORDER_FILLED = "ORDER_FILLED"
    ORDER_REJECTED = "ORDER_REJECTED"
    RUN_FINISHED = "RUN_FINISHED"


@dataclass
class Event:
    type: EventType
    timestamp: int  # simulation time, ms
    order_id: str = ""
    details: dict[str, Any] = field(default_factory=dict)


class EventLog:
    """Append-only event log for backtest audit trail."""

    def __init__(self) -> None:
        self._events: list[Event] = []

    def emit(
        self,
        event_type: EventType,
        timestamp: int,
        order_id: str = "",
        **details: Any,
    ) -> None:
        """Record an event."""
        self._events.append(Event(
            type=event_type,
            timestamp=timestamp,
            order_id=order_id,
            details=details,
        ))

    def get_events(
        self,
        event_type: Optional[EventType] = None,
    ) -> list[Event]:
        """Return events, optionally filtered by type."""
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if e.type == event_type]

    def to_dataframe(self) -> pd.DataFrame:
        """Export all events as DataFrame; ``time`` is the UTC datetime of ``timestamp``."""
        if not self._events:
            return pd.DataFrame(columns=["type", "timestamp", "time", "order_id", "details"])
        df = pd.DataFrame([
            {
                "type": e.type.value,
                "timestamp": e.timestamp,
                "order_id": e.order_id,
                "details": e.details,
            }
            for e in self._events
        ])
        df.insert(2, "time", pd.to_datetime(df["timestamp"], unit="ms", utc=True))
        return df

    def __len__(self) -> int:
        return len(self._events)
