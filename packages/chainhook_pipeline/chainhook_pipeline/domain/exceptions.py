"""Exception hierarchy for the Chainhook event pipeline.

``DomainError`` covers rejected events and missing monitoring records.
``InfrastructureError`` covers bad settings and store failures; services wrap
unexpected store exceptions in ``StorageError`` before they leave the service.
"""

from typing import Any


class ChainhookPipelineError(Exception):
    """Root of every error raised by the pipeline."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Text reported in logs and API responses
            error_code: Stable code for callers; defaults to the class name
            details: Structured context such as record ids or config keys
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


class DomainError(ChainhookPipelineError):
    """Errors about events and monitoring records themselves."""


class ValidationError(DomainError):
    """A Chainhook event or operation does not have the expected shape."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: What is wrong with the payload
            field: Payload field that was rejected, e.g. ``transactions``
            details: Extra context merged into the error details
        """
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, error_code="VALIDATION_ERROR", details=details)


class NotFoundError(DomainError):
    """An event log or alert id is not present in its store."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"{resource_type} with id '{resource_id}' not found",
            error_code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id, **(details or {})},
        )


class InfrastructureError(ChainhookPipelineError):
    """Errors from settings and monitoring stores."""


class ConfigurationError(InfrastructureError):
    """A pipeline setting is invalid.

    ``config_key`` is the dotted settings path, e.g. ``monitoring.node_url``.
    """

    def __init__(
        self,
        config_key: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"Configuration error for '{config_key}': {reason}",
            error_code="CONFIGURATION_ERROR",
            details={"config_key": config_key, "reason": reason, **(details or {})},
        )


class StorageError(InfrastructureError):
    """A monitoring store could not read or write a record."""

    def __init__(
        self,
        operation: str,
        collection: str,
        record_id: str | None = None,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize storage error.

        Args:
            operation: Store call that failed (insert, update, query, count, delete)
            collection: ``event_logs``, ``metrics``, ``alerts`` or ``health_status``
            record_id: Event, alert or node id involved, if any
            reason: Underlying failure text
            details: Extra context merged into the error details
        """
        message = f"Storage operation '{operation}' on '{collection}' failed"
        if record_id:
            message += f" for record '{record_id}'"
        if reason:
            message += f": {reason}"
        super().__init__(
            message,
            error_code="STORAGE_ERROR",
            details={
                "operation": operation,
                "collection": collection,
                "record_id": record_id,
                "reason": reason,
                **(details or {}),
            },
        )
