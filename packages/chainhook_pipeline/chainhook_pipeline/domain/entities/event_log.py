"""Event log entity recording the processing lifecycle of a Chainhook event."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from chainhook_pipeline.domain.enums import EventStatus


@dataclass
class EventLog:
    """A logged Chainhook event.

    Attributes:
        event_id: Unique event identifier
        event_type: Event category (e.g. ``badge_mint``)
        status: Current lifecycle status
        payload: Raw event body as delivered by the node
        received_at: When the event was first logged (UTC)
        processed_at: When the event reached a terminal status (UTC)
        processing_time: Processing duration in milliseconds
        error_message: Failure description for failed events
        handler: Name of the handler that processed the event
        transaction_hash: Hash of the first transaction in the event
        block_height: Height of the block carrying the event
    """

    event_id: str
    event_type: str
    status: EventStatus
    payload: dict[str, Any]
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    processed_at: datetime | None = None
    processing_time: float | None = None
    error_message: str | None = None
    handler: str | None = None
    transaction_hash: str | None = None
    block_height: int | None = None

    def __post_init__(self) -> None:
        if not self.event_id:
            raise ValueError("Event ID cannot be empty")
        if not self.event_type:
            raise ValueError("Event type cannot be empty")

        self.status = EventStatus(self.status)
        if self.received_at.tzinfo is None:
            self.received_at = self.received_at.replace(tzinfo=UTC)

    def transition(
        self,
        status: EventStatus,
        processing_time: float | None = None,
        error_message: str | None = None,
    ) -> None:
        """Move the event to a new status, stamping terminal transitions."""
        self.status = EventStatus(status)
        if processing_time is not None:
            self.processing_time = processing_time
        if error_message is not None:
            self.error_message = error_message
        if self.status.is_terminal:
            self.processed_at = datetime.now(UTC)
