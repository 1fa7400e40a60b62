"""Connectivity record for a Chainhook node."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass
class HealthStatus:
    """Latest health check outcome for one node URL.

    Attributes:
        node_url: Base URL of the node
        is_connected: Whether the last check succeeded
        last_check: When the last check completed (UTC)
        response_time: Duration of the last check in milliseconds
        failed_attempts: Consecutive failed checks, reset on success
        last_error: Error text of the last failed check
        connected_since: Start of the current connected streak (UTC)
    """

    node_url: str
    is_connected: bool = False
    last_check: datetime = field(default_factory=lambda: datetime.now(UTC))
    response_time: float = 0.0
    failed_attempts: int = 0
    last_error: str | None = None
    connected_since: datetime | None = None

    def __post_init__(self) -> None:
        if not self.node_url:
            raise ValueError("Node URL cannot be empty")

    def record_success(self, response_time: float) -> None:
        now = datetime.now(UTC)
        if not self.is_connected or self.connected_since is None:
            self.connected_since = now
        self.is_connected = True
        self.failed_attempts = 0
        self.last_error = None
        self.response_time = response_time
        self.last_check = now

    def record_failure(self, response_time: float, error: str) -> None:
        self.is_connected = False
        self.connected_since = None
        self.failed_attempts += 1
        self.last_error = error
        self.response_time = response_time
        self.last_check = datetime.now(UTC)
