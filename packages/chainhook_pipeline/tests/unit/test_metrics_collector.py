"""Unit tests for the Prometheus metrics collector."""

from __future__ import annotations

from chainhook_pipeline.infrastructure.monitoring import PipelineMetricsCollector
from prometheus_client import REGISTRY


def sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestPipelineMetricsCollector:
    """Test cases for PipelineMetricsCollector."""

    def test_batcher_metrics(self) -> None:
        """Test enqueue, drop and batch counters plus the queue gauge."""
        collector = PipelineMetricsCollector(component="collector-test-batcher")
        labels = {"component": "collector-test-batcher"}
        enqueued = sample("chainhook_batcher_events_enqueued_total", **labels)
        dropped = sample("chainhook_batcher_events_dropped_total", **labels)
        batches = sample("chainhook_batcher_batches_total", **labels)

        collector.record_events_enqueued(5, queue_size=5)
        collector.record_events_dropped(2)
        collector.record_batch(0.01, queue_size=1)
        collector.record_callback_error()

        assert sample("chainhook_batcher_events_enqueued_total", **labels) == enqueued + 5
        assert sample("chainhook_batcher_events_dropped_total", **labels) == dropped + 2
        assert sample("chainhook_batcher_batches_total", **labels) == batches + 1
        assert sample("chainhook_batcher_queue_size", **labels) == 1
        assert sample("chainhook_batcher_callback_errors_total", **labels) >= 1
        assert sample("chainhook_batcher_batch_duration_seconds_count", **labels) >= 1

    def test_router_metrics(self) -> None:
        """Test routing outcomes, filters and handler errors."""
        collector = PipelineMetricsCollector(component="collector-test-router")
        routed = sample(
            "chainhook_router_operations_total", component="collector-test-router", outcome="routed"
        )

        collector.record_routing("routed", 0.001)
        collector.record_routing("invalid")
        collector.record_filtered()
        collector.record_handler_error("badge_mint")

        assert (
            sample(
                "chainhook_router_operations_total",
                component="collector-test-router",
                outcome="routed",
            )
            == routed + 1
        )
        assert (
            sample(
                "chainhook_router_operations_total",
                component="collector-test-router",
                outcome="invalid",
            )
            >= 1
        )
        assert sample("chainhook_router_filtered_total", component="collector-test-router") >= 1
        assert (
            sample(
                "chainhook_router_handler_errors_total",
                component="collector-test-router",
                route="badge_mint",
            )
            >= 1
        )

    def test_monitoring_metrics(self) -> None:
        """Test event status, alert and node health metrics."""
        collector = PipelineMetricsCollector()
        completed = sample("chainhook_events_total", status="completed")
        alerts = sample("chainhook_alerts_total", type="connection", severity="critical")

        collector.record_event_status("completed", 250)
        collector.record_alert("connection", "critical")
        collector.record_node_health("http://collector-test:20456", False, 0.2)

        assert sample("chainhook_events_total", status="completed") == completed + 1
        assert (
            sample("chainhook_alerts_total", type="connection", severity="critical") == alerts + 1
        )
        assert sample("chainhook_node_connected", node_url="http://collector-test:20456") == 0

        collector.record_node_health("http://collector-test:20456", True, 0.1)

        assert sample("chainhook_node_connected", node_url="http://collector-test:20456") == 1
