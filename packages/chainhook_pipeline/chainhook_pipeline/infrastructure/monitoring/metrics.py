"""Prometheus metrics for the Chainhook pipeline."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from chainhook_pipeline.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Batcher metrics
batcher_events_enqueued_total = Counter(
    "chainhook_batcher_events_enqueued_total",
    "Total number of events added to the batch queue",
    ["component"],
)

batcher_events_dropped_total = Counter(
    "chainhook_batcher_events_dropped_total",
    "Total number of queued events dropped on overflow",
    ["component"],
)

batcher_batches_total = Counter(
    "chainhook_batcher_batches_total",
    "Total number of batches delivered to callbacks",
    ["component"],
)

batcher_callback_errors_total = Counter(
    "chainhook_batcher_callback_errors_total",
    "Total number of batch callback failures",
    ["component"],
)

batcher_queue_size = Gauge(
    "chainhook_batcher_queue_size",
    "Current number of events waiting in the batch queue",
    ["component"],
)

batcher_batch_duration = Histogram(
    "chainhook_batcher_batch_duration_seconds",
    "Time spent running all callbacks for one batch",
    ["component"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

# Router metrics
router_operations_total = Counter(
    "chainhook_router_operations_total",
    "Total number of operations routed, by outcome",
    ["component", "outcome"],
)

router_filtered_total = Counter(
    "chainhook_router_filtered_total",
    "Total number of route candidates skipped by their filter",
    ["component"],
)

router_handler_errors_total = Counter(
    "chainhook_router_handler_errors_total",
    "Total number of route handler failures",
    ["component", "route"],
)

router_routing_duration = Histogram(
    "chainhook_router_routing_duration_seconds",
    "Time spent routing one operation",
    ["component"],
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

# Event lifecycle metrics
events_total = Counter(
    "chainhook_events_total",
    "Total number of Chainhook events by lifecycle status",
    ["status"],
)

event_processing_duration = Histogram(
    "chainhook_event_processing_duration_seconds",
    "Event processing duration in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

alerts_total = Counter(
    "chainhook_alerts_total",
    "Total number of alerts raised",
    ["type", "severity"],
)

# Node connectivity
node_connected = Gauge(
    "chainhook_node_connected",
    "Whether the last health check against the node succeeded (1) or not (0)",
    ["node_url"],
)

node_health_check_duration = Histogram(
    "chainhook_node_health_check_duration_seconds",
    "Duration of node health checks in seconds",
    ["node_url"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


class PipelineMetricsCollector:
    """Records pipeline activity into the Prometheus registry.

    Args:
        component: Label distinguishing batcher and router instances
    """

    def __init__(self, component: str = "default") -> None:
        self.component = component

    def record_events_enqueued(self, count: int, queue_size: int) -> None:
        batcher_events_enqueued_total.labels(component=self.component).inc(count)
        batcher_queue_size.labels(component=self.component).set(queue_size)

    def record_events_dropped(self, count: int) -> None:
        batcher_events_dropped_total.labels(component=self.component).inc(count)
        logger.debug(
            "Queued events dropped",
            extra={
                "component": self.component,
                "dropped": count,
                "metric": "chainhook_batcher_events_dropped_total",
            },
        )

    def record_batch(self, duration_seconds: float, queue_size: int) -> None:
        batcher_batches_total.labels(component=self.component).inc()
        batcher_batch_duration.labels(component=self.component).observe(duration_seconds)
        batcher_queue_size.labels(component=self.component).set(queue_size)

    def record_callback_error(self) -> None:
        batcher_callback_errors_total.labels(component=self.component).inc()

    def set_queue_size(self, queue_size: int) -> None:
        batcher_queue_size.labels(component=self.component).set(queue_size)

    def record_routing(self, outcome: str, duration_seconds: float | None = None) -> None:
        """Record a routing outcome (``routed``, ``unrouted`` or ``invalid``)."""
        router_operations_total.labels(component=self.component, outcome=outcome).inc()
        if duration_seconds is not None:
            router_routing_duration.labels(component=self.component).observe(duration_seconds)

    def record_filtered(self) -> None:
        router_filtered_total.labels(component=self.component).inc()

    def record_handler_error(self, route: str) -> None:
        router_handler_errors_total.labels(component=self.component, route=route).inc()

    def record_event_status(self, status: str, processing_time_ms: float | None = None) -> None:
        events_total.labels(status=status).inc()
        if processing_time_ms is not None:
            event_processing_duration.observe(processing_time_ms / 1000)

    def record_alert(self, alert_type: str, severity: str) -> None:
        alerts_total.labels(type=alert_type, severity=severity).inc()

    def record_node_health(
        self, node_url: str, is_connected: bool, duration_seconds: float
    ) -> None:
        node_connected.labels(node_url=node_url).set(1 if is_connected else 0)
        node_health_check_duration.labels(node_url=node_url).observe(duration_seconds)
