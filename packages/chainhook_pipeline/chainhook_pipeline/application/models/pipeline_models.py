"""Pydantic models for batching and routing."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OperationFilter(BaseModel):
    """Predicate attached to a route. Unset fields match every operation."""

    model_config = ConfigDict(frozen=True)

    type: str | None = Field(default=None, description="Required operation type")
    contract_address: str | None = Field(
        default=None, description="Required contract_call.contract value"
    )
    method: str | None = Field(default=None, description="Required contract_call.method value")

    def matches(self, operation: Mapping[str, Any]) -> bool:
        """Check an operation against every set field.

        A ``contract_call`` that is not an object has no contract or method.
        """
        if self.type and operation.get("type") != self.type:
            return False

        contract_call = operation.get("contract_call")
        if not isinstance(contract_call, Mapping):
            contract_call = {}
        if self.contract_address and contract_call.get("contract") != self.contract_address:
            return False
        if self.method and contract_call.get("method") != self.method:
            return False

        return True


class BatchMetrics(BaseModel):
    """Batcher counters and rolling averages."""

    total_batches: int = Field(default=0, ge=0, description="Batches delivered")
    total_events: int = Field(default=0, ge=0, description="Events delivered in batches")
    average_batch_size: float = Field(default=0.0, ge=0, description="Events per batch")
    average_processing_time: float = Field(
        default=0.0, ge=0, description="Rolling average batch time in milliseconds"
    )


class RouteMetrics(BaseModel):
    """Router counters and rolling averages."""

    total_operations: int = Field(default=0, ge=0, description="Operations submitted")
    routed: int = Field(default=0, ge=0, description="Operations accepted by a handler")
    filtered: int = Field(default=0, ge=0, description="Route candidates skipped by filter")
    average_routing_time: float = Field(
        default=0.0, ge=0, description="Rolling average routing time in milliseconds"
    )
