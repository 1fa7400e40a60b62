"""Main entry point for the Chainhook pipeline CLI."""

from __future__ import annotations

import asyncio

import typer

from chainhook_pipeline.application.services import HealthMonitor, MonitoringOrchestrator
from chainhook_pipeline.config import PipelineConfig, load_config
from chainhook_pipeline.domain.exceptions import ConfigurationError
from chainhook_pipeline.infrastructure.logging import setup_logging
from chainhook_pipeline.version import __version__

app = typer.Typer(help="Operate the Chainhook event pipeline.")


def _load_config_or_exit() -> PipelineConfig:
    try:
        return load_config()
    except ConfigurationError as e:
        typer.echo(f"Invalid configuration: {e.message}", err=True)
        raise typer.Exit(code=1) from e


@app.command()  # type: ignore[misc]
def version() -> None:
    """Show the Chainhook pipeline version."""
    typer.echo(f"Chainhook pipeline version {__version__}")


@app.command("check-config")  # type: ignore[misc]
def check_config() -> None:
    """Validate the configuration read from the environment."""
    config = _load_config_or_exit()
    monitoring = config.monitoring
    thresholds = monitoring.alert_thresholds

    typer.echo("Configuration OK")
    typer.echo(f"  node_url: {monitoring.node_url}")
    typer.echo(f"  health_check_interval: {monitoring.health_check_interval}ms")
    typer.echo(f"  metrics_interval: {monitoring.metrics_interval}ms")
    typer.echo(f"  log_retention_days: {monitoring.log_retention_days}")
    typer.echo(f"  performance_threshold: {thresholds.performance_threshold}ms")
    typer.echo(f"  failure_rate_threshold: {thresholds.failure_rate_threshold}%")
    typer.echo(f"  max_consecutive_failures: {thresholds.max_consecutive_failures}")
    typer.echo(
        f"  batching: size={config.batching.batch_size} "
        f"timeout={config.batching.batch_timeout_ms}ms "
        f"max_queue={config.batching.max_queue_size}"
    )


async def _check_node(node_url: str, health_path: str, timeout_ms: int) -> bool:
    monitor = HealthMonitor(health_path=health_path)
    try:
        result = await monitor.check_health(node_url, timeout_ms)
    finally:
        await monitor.close()

    if result.is_connected:
        typer.echo(f"Node {node_url} is healthy ({result.response_time:.0f}ms)")
    else:
        typer.echo(f"Node {node_url} is unreachable: {result.error}", err=True)
    return result.is_connected


@app.command("check-node")  # type: ignore[misc]
def check_node(
    node_url: str | None = typer.Option(None, help="Node URL; defaults to the configured one"),
    timeout_ms: int | None = typer.Option(None, help="Health check timeout in milliseconds"),
) -> None:
    """Run one health check against the Chainhook node."""
    config = _load_config_or_exit()
    monitoring = config.monitoring

    healthy = asyncio.run(
        _check_node(
            node_url or monitoring.node_url,
            monitoring.health_check_path,
            timeout_ms or monitoring.health_check_timeout,
        )
    )
    if not healthy:
        raise typer.Exit(code=1)


async def _run_monitoring(config: PipelineConfig, duration: float | None) -> None:
    orchestrator = MonitoringOrchestrator(config.monitoring)
    await orchestrator.initialize()
    try:
        if duration is not None:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()
    finally:
        await orchestrator.shutdown()


@app.command()  # type: ignore[misc]
def run(
    duration: float | None = typer.Option(
        None, help="Stop after this many seconds instead of running until interrupted"
    ),
) -> None:
    """Run node health, metrics and anomaly monitoring."""
    config = _load_config_or_exit()
    setup_logging(config.logging)

    typer.echo(f"Monitoring {config.monitoring.node_url}")
    try:
        asyncio.run(_run_monitoring(config, duration))
    except KeyboardInterrupt:
        typer.echo("Stopped")


if __name__ == "__main__":
    app()
