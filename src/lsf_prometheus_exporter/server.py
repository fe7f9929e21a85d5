"""HTTP server for the LSF Prometheus Exporter."""

import json
import logging
import os
import pathlib
import threading
from dataclasses import dataclass

import prometheus_client
import prometheus_client.core
import pydantic
import starlette.applications
import starlette.requests
import starlette.responses
import starlette.routing
import structlog

from . import lsfcli, registry, scrape
from .errors import ConfigurationError

CONFIG_ENV_VAR = "LSF_EXPORTER_CONFIG_PATH"
COLLECT_PARAM = "collect[]"
HANDLER_STATUS_CODES = ("200", "400", "500", "503")
logger = structlog.get_logger(__name__)


class ExporterConfig(pydantic.BaseModel):
    """Configuration for the LSF Prometheus Exporter."""

    lsf_bindir: str | None = pydantic.Field(
        None,
        description="LSF binary directory, defaults to $LSF_BINDIR",
    )
    lsf_libdir: str | None = pydantic.Field(
        None,
        description="LSF library directory, defaults to $LSF_LIBDIR",
    )
    lsf_serverdir: str | None = pydantic.Field(
        None,
        description="LSF server directory, defaults to $LSF_SERVERDIR",
    )
    lsf_envdir: str | None = pydantic.Field(
        None,
        description="LSF configuration directory, defaults to $LSF_ENVDIR",
    )
    command_timeout: float | None = pydantic.Field(
        None,
        description="Seconds before an LSF command is killed, unset for no limit",
        gt=0,
    )
    collectors: dict[str, bool] = pydantic.Field(
        default_factory=dict,
        description="Collector name to enabled flag",
    )
    disable_defaults: bool = pydantic.Field(
        False,
        description="Disable every collector not enabled in 'collectors'",
    )
    max_workers: int | None = pydantic.Field(
        None,
        description="Scrape thread pool size, default one per collector",
        gt=0,
    )
    include_exporter_metrics: bool = pydantic.Field(
        True,
        description="Export process_*, python_* and promhttp_* metrics about the exporter",
    )
    max_requests: int = pydantic.Field(
        40,
        description="Maximum number of parallel scrape requests, 0 for no limit",
        ge=0,
    )
    port: int = pydantic.Field(9818, description="HTTP server port", gt=0, lt=65536)
    metrics_path: str = pydantic.Field(
        "/metrics",
        description="URL path for metrics endpoint",
    )
    log_level: str = pydantic.Field("INFO", description="Logging level")


def configure_logging(log_level_name: str) -> None:
    """Configure structlog for logfmt output."""
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.EventRenamer("msg"),
            structlog.processors.format_exc_info,
            structlog.processors.LogfmtRenderer(
                key_order=("timestamp", "level", "msg"),
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config(config_path: str) -> ExporterConfig:
    """Load configuration from JSON file."""
    path = pathlib.Path(config_path)
    if not path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise FileNotFoundError(msg)

    with path.open("r") as f:
        data = json.load(f)

    return ExporterConfig(**data)


@dataclass(frozen=True)
class HandlerMetrics:
    """Request counters of the metrics endpoint itself."""

    requests: prometheus_client.Counter
    in_flight: prometheus_client.Gauge

    @classmethod
    def build(cls) -> "HandlerMetrics":
        requests = prometheus_client.Counter(
            "promhttp_metric_handler_requests",
            "Total number of scrapes by HTTP status code.",
            ["code"],
            registry=None,
        )
        for code in HANDLER_STATUS_CODES:
            requests.labels(code=code)
        in_flight = prometheus_client.Gauge(
            "promhttp_metric_handler_requests_in_flight",
            "Current number of scrapes being served.",
            registry=None,
        )
        return cls(requests=requests, in_flight=in_flight)


def create_registry(
    orchestrator: scrape.ScrapeOrchestrator,
    filters: tuple[str, ...] = (),
    include_exporter_metrics: bool = False,
    handler_metrics: HandlerMetrics | None = None,
) -> prometheus_client.core.CollectorRegistry:
    """Create a Prometheus registry scraping the selected LSF collectors.

    Creates a custom registry (not the global one) so filtered scrapes only
    run the requested collectors.

    Args:
        orchestrator: Orchestrator running the LSF collectors.
        filters: Collector names to run, all enabled collectors if empty.
        include_exporter_metrics: Also register process and platform
            collectors describing the exporter itself.
        handler_metrics: Endpoint counters, registered along with the
            exporter metrics.

    Returns:
        Configured Prometheus registry.
    """
    prom_registry = prometheus_client.core.CollectorRegistry()
    prom_registry.register(scrape.LsfCollector(orchestrator, filters))
    if include_exporter_metrics:
        prometheus_client.ProcessCollector(registry=prom_registry)
        prometheus_client.PlatformCollector(registry=prom_registry)
        if handler_metrics is not None:
            prom_registry.register(handler_metrics.requests)
            prom_registry.register(handler_metrics.in_flight)
    return prom_registry


def create_starlette_app(
    metrics_path: str,
    orchestrator: scrape.ScrapeOrchestrator,
    include_exporter_metrics: bool = False,
    max_requests: int = 0,
) -> starlette.applications.Starlette:
    """Create a Starlette application for serving Prometheus metrics.

    Args:
        metrics_path: URL path for metrics endpoint (e.g., "/metrics").
        orchestrator: Orchestrator running the LSF collectors.
        include_exporter_metrics: Export metrics about the exporter itself.
        max_requests: Maximum number of scrapes served in parallel, 0 for
            no limit. Requests over the limit get a 503 response.

    Returns:
        Configured Starlette application. ``app.state.request_slots`` holds
        the semaphore bounding parallel scrapes, or None without a limit.
    """
    handler_metrics = HandlerMetrics.build()
    request_slots = threading.BoundedSemaphore(max_requests) if max_requests else None
    unfiltered_registry = create_registry(
        orchestrator,
        include_exporter_metrics=include_exporter_metrics,
        handler_metrics=handler_metrics,
    )

    def serve_metrics(filters: tuple[str, ...]) -> starlette.responses.Response:
        prom_registry = (
            create_registry(
                orchestrator,
                filters,
                include_exporter_metrics,
                handler_metrics,
            )
            if filters
            else unfiltered_registry
        )
        try:
            metrics_output = prometheus_client.generate_latest(prom_registry)
        except ConfigurationError as e:
            logger.warning("Couldn't create filtered metrics handler", error=str(e))
            return starlette.responses.PlainTextResponse(
                content=f"Couldn't create filtered metrics handler: {e}",
                status_code=400,
            )

        return starlette.responses.PlainTextResponse(
            content=metrics_output,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    def serve_limited(filters: tuple[str, ...]) -> starlette.responses.Response:
        if request_slots is None:
            return serve_metrics(filters)
        if not request_slots.acquire(blocking=False):
            logger.warning("Too many parallel scrapes", max_requests=max_requests)
            return starlette.responses.PlainTextResponse(
                content=(
                    f"Limit of concurrent requests reached ({max_requests}), "
                    "try again later."
                ),
                status_code=503,
            )
        try:
            return serve_metrics(filters)
        finally:
            request_slots.release()

    def metrics_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        """Generate and serve Prometheus metrics.

        Repeated ``collect[]`` query parameters restrict the scrape to the
        named collectors.

        Args:
            request: The incoming HTTP request.

        Returns:
            PlainTextResponse with metrics in Prometheus exposition format,
            a 400 response naming an unknown or disabled collector, or a 503
            response when too many scrapes are already running.
        """
        filters = tuple(request.query_params.getlist(COLLECT_PARAM))
        logger.info(
            "HTTP request",
            client_ip=request.client.host if request.client else "unknown",
            method=request.method,
            path=request.url.path,
            filters=",".join(filters),
        )

        with handler_metrics.in_flight.track_inprogress():
            try:
                response = serve_limited(filters)
            except Exception:
                handler_metrics.requests.labels(code="500").inc()
                raise
        handler_metrics.requests.labels(code=str(response.status_code)).inc()
        return response

    def index_endpoint(
        request: starlette.requests.Request,
    ) -> starlette.responses.Response:
        return starlette.responses.HTMLResponse(
            "<html>"
            "<head><title>LSF Exporter</title></head>"
            "<body>"
            "<h1>LSF Exporter</h1>"
            f'<p><a href="{metrics_path}">Metrics</a></p>'
            "</body>"
            "</html>",
        )

    routes = [
        starlette.routing.Route(metrics_path, metrics_endpoint, methods=["GET"]),
        starlette.routing.Route("/", index_endpoint, methods=["GET"]),
    ]

    app = starlette.applications.Starlette(routes=routes)
    app.state.request_slots = request_slots
    return app


def create_exporter(config: ExporterConfig) -> starlette.applications.Starlette:
    """Construct the exporter ASGI app from validated config.

    Raises:
        ConfigurationError: If the LSF environment is invalid or the config
            names an unknown collector.
    """
    environment = lsfcli.LsfEnvironment.from_env(
        bindir=config.lsf_bindir,
        libdir=config.lsf_libdir,
        serverdir=config.lsf_serverdir,
        envdir=config.lsf_envdir,
    )
    runner = lsfcli.CommandRunner(environment, timeout=config.command_timeout)
    logger.info("Created command runner", lsf_envdir=environment.envdir)

    collector_registry = registry.build_default_registry(
        runner,
        overrides=config.collectors,
        disable_defaults=config.disable_defaults,
    )
    orchestrator = scrape.ScrapeOrchestrator(
        collector_registry,
        max_workers=config.max_workers,
    )

    return create_starlette_app(
        metrics_path=config.metrics_path,
        orchestrator=orchestrator,
        include_exporter_metrics=config.include_exporter_metrics,
        max_requests=config.max_requests,
    )


def create_app(config_path: str | None = None) -> starlette.applications.Starlette:
    """Create the exporter ASGI app using a config path or environment default."""
    resolved_path = config_path or os.environ.get(CONFIG_ENV_VAR, "/config.json")
    config = load_config(resolved_path)
    configure_logging(config.log_level)
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        logger.warning(
            "LSF Exporter is running as root user. This exporter is designed "
            "to run as unprivileged user, root is not required.",
        )
    return create_exporter(config)
