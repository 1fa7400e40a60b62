"""Runtime error log for the Chainhook pipeline.

Batcher callback failures, router handler failures and rejected operations are
recorded here so operators can inspect what went wrong without scraping logs.
The log is an injectable instance rather than process-wide state.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from chainhook_pipeline.domain.enums import ErrorType
from chainhook_pipeline.infrastructure.logging import get_logger

DEFAULT_MAX_ENTRIES = 1000


@dataclass(frozen=True)
class PipelineErrorRecord:
    """One recorded pipeline error."""

    type: ErrorType
    message: str
    original_error: BaseException | None = None
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "original_error": repr(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class ErrorLog:
    """Capped, in-memory log of categorized pipeline errors.

    The oldest entry is evicted once ``max_entries`` is reached.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the error log.

        Args:
            max_entries: Number of entries retained
            logger: Logger used to report each recorded error
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._entries: deque[PipelineErrorRecord] = deque(maxlen=max_entries)
        self._logger = logger or get_logger(__name__)

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen or DEFAULT_MAX_ENTRIES

    def record(
        self,
        error_type: ErrorType,
        message: str,
        original_error: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> PipelineErrorRecord:
        """Append an error to the log and report it."""
        entry = PipelineErrorRecord(
            type=ErrorType(error_type),
            message=message,
            original_error=original_error,
            context=context or {},
        )
        self._entries.append(entry)

        self._logger.error(
            f"[{entry.type.value}] {entry.message}",
            extra={
                "error_type": entry.type.value,
                "context": entry.context,
                "original_error": str(original_error) if original_error else None,
            },
            exc_info=original_error,
        )
        return entry

    def handle_parse_error(
        self, message: str, original_error: BaseException | None = None
    ) -> PipelineErrorRecord:
        return self.record(
            ErrorType.PARSE_ERROR,
            message,
            original_error,
            {"original_message": str(original_error) if original_error else None},
        )

    def handle_validation_error(
        self, message: str, context: dict[str, Any] | None = None
    ) -> PipelineErrorRecord:
        return self.record(ErrorType.VALIDATION_ERROR, message, None, context)

    def handle_handler_error(
        self,
        handler_name: str,
        message: str,
        original_error: BaseException | None = None,
    ) -> PipelineErrorRecord:
        return self.record(
            ErrorType.HANDLER_ERROR,
            f"Handler error in {handler_name}: {message}",
            original_error,
            {"handler": handler_name},
        )

    def handle_notification_error(
        self,
        user_id: str,
        message: str,
        original_error: BaseException | None = None,
    ) -> PipelineErrorRecord:
        return self.record(
            ErrorType.NOTIFICATION_ERROR,
            f"Notification error for user {user_id}: {message}",
            original_error,
            {"user_id": user_id},
        )

    def handle_delivery_error(
        self,
        notification_id: str,
        message: str,
        original_error: BaseException | None = None,
    ) -> PipelineErrorRecord:
        return self.record(
            ErrorType.DELIVERY_ERROR,
            f"Delivery error for notification {notification_id}: {message}",
            original_error,
            {"notification_id": notification_id},
        )

    def handle_websocket_error(
        self, message: str, original_error: BaseException | None = None
    ) -> PipelineErrorRecord:
        return self.record(ErrorType.WEBSOCKET_ERROR, message, original_error)

    def handle_unknown_error(
        self,
        message: str,
        original_error: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> PipelineErrorRecord:
        return self.record(ErrorType.UNKNOWN_ERROR, message, original_error, context)

    def get_error_log(self, limit: int | None = None) -> list[PipelineErrorRecord]:
        """Return entries oldest first, or only the last ``limit`` entries."""
        entries = list(self._entries)
        if limit:
            return entries[-limit:]
        return entries

    def get_errors_by_type(self, error_type: ErrorType) -> list[PipelineErrorRecord]:
        return [entry for entry in self._entries if entry.type == error_type]

    def get_error_count(self, error_type: ErrorType | None = None) -> int:
        if error_type is None:
            return len(self._entries)
        return len(self.get_errors_by_type(error_type))

    def get_error_summary(self) -> dict[str, int]:
        """Count entries per error type."""
        return dict(Counter(entry.type.value for entry in self._entries))

    def get_recent_errors(self, within_minutes: float = 5) -> list[PipelineErrorRecord]:
        cutoff = datetime.now(UTC) - timedelta(minutes=within_minutes)
        return [entry for entry in self._entries if entry.timestamp > cutoff]

    def is_recent_error(self, error_type: ErrorType, within_minutes: float = 5) -> bool:
        return any(entry.type == error_type for entry in self.get_recent_errors(within_minutes))

    def clear(self) -> None:
        self._entries.clear()
