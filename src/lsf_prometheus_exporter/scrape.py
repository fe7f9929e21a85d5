"""Concurrent scrape orchestration.

Runs every selected collector on its own thread, merges their samples and
records how long each collector took and whether it succeeded. A failing
collector only marks itself as failed; the others still contribute samples.
"""

import queue
import time
from collections.abc import Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import structlog
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector as PrometheusCollector

from .collector import Collector
from .errors import ExecutionError, LabelCardinalityError
from .metrics import MetricDescriptor, TypedSample, to_metric_families
from .registry import CollectorRegistry

logger = structlog.get_logger(__name__)

SCRAPE_DURATION = MetricDescriptor.build(
    "scrape",
    "collector_duration_seconds",
    "lsf_exporter: Duration of a collector scrape.",
    ("collector",),
)
SCRAPE_SUCCESS = MetricDescriptor.build(
    "scrape",
    "collector_success",
    "lsf_exporter: Whether a collector succeeded.",
    ("collector",),
)


class ScrapeOutcome(NamedTuple):
    collector: str
    duration_seconds: float
    success: bool


class ScrapeResult(NamedTuple):
    """Merged samples and per-collector outcomes of one scrape."""

    samples: list[TypedSample]
    outcomes: list[ScrapeOutcome]

    def meta_samples(self) -> Iterator[TypedSample]:
        """Yield the duration and success samples of every collector."""
        for outcome in self.outcomes:
            yield SCRAPE_DURATION.sample(outcome.duration_seconds, outcome.collector)
            yield SCRAPE_SUCCESS.sample(1 if outcome.success else 0, outcome.collector)


def execute(name: str, collector: Collector, output: queue.SimpleQueue) -> ScrapeOutcome:
    """Run one collector's update, writing samples into ``output``.

    Any error other than a label cardinality mismatch is logged and turned
    into a failed outcome.

    Raises:
        LabelCardinalityError: If the collector emits a malformed sample.
    """
    begin = time.perf_counter()
    try:
        collector.update(output.put)
    except LabelCardinalityError:
        raise
    except ExecutionError as e:
        duration = time.perf_counter() - begin
        logger.error(
            "Collector failed",
            collector=name,
            duration_seconds=duration,
            error=str(e),
        )
        return ScrapeOutcome(name, duration, False)
    except Exception:
        duration = time.perf_counter() - begin
        logger.exception("Collector failed", collector=name, duration_seconds=duration)
        return ScrapeOutcome(name, duration, False)

    duration = time.perf_counter() - begin
    logger.debug("Collector succeeded", collector=name, duration_seconds=duration)
    return ScrapeOutcome(name, duration, True)


def _drain(output: queue.SimpleQueue) -> list[TypedSample]:
    samples = []
    while True:
        try:
            samples.append(output.get_nowait())
        except queue.Empty:
            return samples


class ScrapeOrchestrator:
    """Runs the selected collectors of a registry concurrently."""

    def __init__(self, registry: CollectorRegistry, max_workers: int | None = None):
        """Initialize the orchestrator.

        Args:
            registry: Registry resolving collector names to instances.
            max_workers: Thread pool size, default one thread per collector.
        """
        if max_workers is not None and max_workers <= 0:
            msg = "max_workers must be positive"
            raise ValueError(msg)
        self.registry = registry
        self._max_workers = max_workers

    def scrape(self, filters: Iterable[str] = ()) -> ScrapeResult:
        """Run the collectors selected by ``filters`` (all enabled if empty).

        Blocks until every collector has finished.

        Raises:
            ConfigurationError: If a filter names an unknown or disabled
                collector. Nothing is run in that case.
            LabelCardinalityError: If a collector emits a malformed sample.
        """
        collectors = self.registry.resolve(filters)
        if not collectors:
            return ScrapeResult([], [])

        output: queue.SimpleQueue[TypedSample] = queue.SimpleQueue()
        with ThreadPoolExecutor(
            max_workers=self._max_workers or len(collectors),
            thread_name_prefix="lsf-scrape",
        ) as executor:
            futures = [
                executor.submit(execute, name, collector, output)
                for name, collector in collectors.items()
            ]
            outcomes = [future.result() for future in futures]

        return ScrapeResult(_drain(output), outcomes)


class LsfCollector(PrometheusCollector):
    """Prometheus collector running one scrape per collection.

    Yields the collectors' metric families followed by the
    ``lsf_scrape_collector_duration_seconds`` and
    ``lsf_scrape_collector_success`` families.
    """

    def __init__(self, orchestrator: ScrapeOrchestrator, filters: Iterable[str] = ()):
        self._orchestrator = orchestrator
        self._filters = tuple(filters)

    def collect(self) -> Iterator[Metric]:
        result = self._orchestrator.scrape(self._filters)
        yield from to_metric_families(result.samples)
        yield from to_metric_families(result.meta_samples())
