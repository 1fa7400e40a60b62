"""First-match dispatch of Chainhook operations to registered handlers."""

from __future__ import annotations

import inspect
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from chainhook_pipeline.application.error_handling import ErrorLog
from chainhook_pipeline.application.models import OperationFilter, RouteMetrics
from chainhook_pipeline.infrastructure.logging import get_logger
from chainhook_pipeline.infrastructure.monitoring import PipelineMetricsCollector

OperationHandler = Callable[[dict[str, Any], dict[str, Any]], bool | Awaitable[bool]]

DEFAULT_ROUTE_KEY = "default"


@dataclass(frozen=True)
class Route:
    """A named handler with an optional filter."""

    key: str
    handler: OperationHandler
    filter: OperationFilter | None = None

    def accepts(self, operation: Mapping[str, Any]) -> bool:
        return self.filter is None or self.filter.matches(dict(operation))


class OperationRouter:
    """Routes operations through filtered handlers in registration order.

    The first handler whose filter matches and which returns a truthy value
    claims the operation. Handlers that raise are recorded and skipped. When no
    route claims the operation, the optional default route is tried.
    """

    def __init__(
        self,
        *,
        name: str = "default",
        max_timing_samples: int = 1000,
        error_log: ErrorLog | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the router.

        Args:
            name: Label used in logs and Prometheus metrics
            max_timing_samples: Routing timings kept for the rolling average
            error_log: Log receiving handler failures and rejected operations
            logger: Logger to use instead of the module logger
        """
        self._name = name
        self._logger = logger or get_logger(__name__)
        self._error_log = error_log if error_log is not None else ErrorLog(logger=self._logger)
        self._collector = PipelineMetricsCollector(component=f"router:{name}")

        self._routes: list[Route] = []
        self._default_route: OperationHandler | None = None

        self._total_operations = 0
        self._routed = 0
        self._filtered = 0
        self._routing_timings: deque[float] = deque(maxlen=max_timing_samples)

    @property
    def name(self) -> str:
        return self._name

    @property
    def error_log(self) -> ErrorLog:
        return self._error_log

    @property
    def routes(self) -> list[Route]:
        return list(self._routes)

    def register_route(
        self,
        key: str,
        handler: OperationHandler,
        filter: OperationFilter | Mapping[str, Any] | None = None,
    ) -> None:
        """Register a route, replacing any route with the same key in place."""
        if filter is not None and not isinstance(filter, OperationFilter):
            filter = OperationFilter.model_validate(filter)

        route = Route(key=key, handler=handler, filter=filter)
        for index, existing in enumerate(self._routes):
            if existing.key == key:
                self._routes[index] = route
                self._logger.debug("Route replaced", extra={"router": self._name, "route": key})
                return

        self._routes.append(route)
        self._logger.debug("Route registered", extra={"router": self._name, "route": key})

    def set_default_route(self, handler: OperationHandler) -> None:
        self._default_route = handler
        self._logger.debug("Default route set", extra={"router": self._name})

    async def route_operation(
        self,
        operation: Mapping[str, Any] | None,
        context: dict[str, Any] | None = None,
    ) -> bool:
        """Dispatch one operation.

        Returns:
            True if a handler claimed the operation
        """
        self._total_operations += 1
        start = time.perf_counter()

        if not isinstance(operation, Mapping) or not operation.get("type"):
            self._logger.warning("Invalid operation: missing type", extra={"router": self._name})
            self._error_log.handle_validation_error(
                "Invalid operation: missing type", {"router": self._name}
            )
            self._collector.record_routing("invalid")
            return False

        payload = dict(operation)
        context = context if context is not None else {}

        for route in list(self._routes):
            try:
                accepted = route.accepts(payload)
            except Exception as e:
                self._error_log.handle_unknown_error(
                    f"Route filter failed for {route.key}",
                    e,
                    {"router": self._name, "route": route.key},
                )
                self._record_timing(start, "error")
                return False

            if not accepted:
                self._filtered += 1
                self._collector.record_filtered()
                continue

            if await self._invoke(route.key, route.handler, payload, context):
                self._routed += 1
                self._record_timing(start, "routed")
                self._logger.debug(
                    f"Operation routed to: {route.key}",
                    extra={"router": self._name, "route": route.key, "type": payload["type"]},
                )
                return True

        if self._default_route is not None and await self._invoke(
            DEFAULT_ROUTE_KEY, self._default_route, payload, context
        ):
            self._routed += 1
            self._record_timing(start, "routed")
            return True

        self._record_timing(start, "unrouted")
        return False

    async def route_operation_batch(
        self,
        operations: Iterable[Mapping[str, Any]],
        context: dict[str, Any] | None = None,
    ) -> int:
        """Route operations one after another and count the routed ones."""
        total = 0
        routed_count = 0
        for operation in operations:
            total += 1
            if await self.route_operation(operation, context):
                routed_count += 1

        self._logger.debug(
            f"Batch: {total} operations -> {routed_count} routed",
            extra={"router": self._name, "total": total, "routed": routed_count},
        )
        return routed_count

    def get_metrics(self) -> RouteMetrics:
        average_routing_time = (
            sum(self._routing_timings) / len(self._routing_timings)
            if self._routing_timings
            else 0.0
        )
        return RouteMetrics(
            total_operations=self._total_operations,
            routed=self._routed,
            filtered=self._filtered,
            average_routing_time=round(average_routing_time, 4),
        )

    def get_route_count(self) -> int:
        return len(self._routes)

    def get_timing_sample_count(self) -> int:
        return len(self._routing_timings)

    def remove_route(self, key: str) -> bool:
        for index, route in enumerate(self._routes):
            if route.key == key:
                del self._routes[index]
                self._logger.debug("Route removed", extra={"router": self._name, "route": key})
                return True
        return False

    def clear_routes(self) -> None:
        self._routes = []
        self._default_route = None
        self._logger.warning("All routes cleared", extra={"router": self._name})

    def reset_metrics(self) -> None:
        self._total_operations = 0
        self._routed = 0
        self._filtered = 0
        self._routing_timings.clear()
        self._logger.info("Router metrics reset", extra={"router": self._name})

    def destroy(self) -> None:
        self.clear_routes()
        self._logger.info("OperationRouter destroyed", extra={"router": self._name})

    async def _invoke(
        self,
        key: str,
        handler: OperationHandler,
        operation: dict[str, Any],
        context: dict[str, Any],
    ) -> bool:
        try:
            result = handler(operation, context)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self._collector.record_handler_error(key)
            self._error_log.handle_handler_error(key, str(e), e)
            return False
        return bool(result)

    def _record_timing(self, start: float, outcome: str) -> None:
        elapsed = time.perf_counter() - start
        self._routing_timings.append(elapsed * 1000)
        self._collector.record_routing(outcome, elapsed)
