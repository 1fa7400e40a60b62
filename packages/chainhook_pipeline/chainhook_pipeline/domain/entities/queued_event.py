"""Queued event held by the batcher until its batch is flushed."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass(frozen=True)
class QueuedEvent:
    """An event payload plus the time it entered the queue."""

    payload: dict[str, Any]
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
