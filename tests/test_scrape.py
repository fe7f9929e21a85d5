"""Tests for the concurrent scrape orchestrator and its Prometheus adapter.

The default registry is wired with a mock runner answering from recorded LSF
output, so these tests exercise the full per-scrape pipeline.
"""

import threading
from unittest.mock import MagicMock

import prometheus_client
import pytest

from lsf_prometheus_exporter import registry, scrape
from lsf_prometheus_exporter.errors import (
    ConfigurationError,
    ExecutionError,
    LabelCardinalityError,
)
from lsf_prometheus_exporter.metrics import MetricDescriptor

ALL_NAMES = sorted(kind.value for kind in registry.CollectorKind)


@pytest.fixture
def orchestrator(mock_runner: MagicMock) -> scrape.ScrapeOrchestrator:
    """Orchestrator over every default collector."""
    return scrape.ScrapeOrchestrator(registry.build_default_registry(mock_runner))


def _success_by_collector(result: scrape.ScrapeResult) -> dict[str, bool]:
    return {o.collector: o.success for o in result.outcomes}


class _StubCollector:
    """Collector running an arbitrary function as its update."""

    def __init__(self, name, update):
        self.name = name
        self.update = update


def _stub_registry(mock_runner: MagicMock, updates: dict) -> registry.CollectorRegistry:
    reg = registry.CollectorRegistry(mock_runner)
    for name, update in updates.items():
        reg.register(
            registry.CollectorKind(name),
            lambda runner, name=name, update=update: _StubCollector(name, update),
        )
    return reg


# ---------------------------------------------------------------------------
# Successful scrape
# ---------------------------------------------------------------------------


def test_scrape_runs_every_enabled_collector(orchestrator: scrape.ScrapeOrchestrator):
    result = orchestrator.scrape()
    assert sorted(o.collector for o in result.outcomes) == ALL_NAMES
    assert all(o.success for o in result.outcomes)
    assert all(o.duration_seconds >= 0.0 for o in result.outcomes)


def test_scrape_merges_samples_from_all_collectors(
    orchestrator: scrape.ScrapeOrchestrator,
):
    names = {s.descriptor.name for s in orchestrator.scrape().samples}
    for expected_name in (
        "lsf_bhost_njobs_count",
        "lsf_bqueues_status",
        "lsf_lsload_ut",
        "lsf_lshosts_max_mem",
        "lsf_cluster_info",
        "lsf_bjobs_status",
    ):
        assert expected_name in names


def test_scrape_label_counts_match_descriptors(
    orchestrator: scrape.ScrapeOrchestrator,
):
    """Every sample of a full scrape has one value per declared label."""
    result = orchestrator.scrape()
    for sample in [*result.samples, *result.meta_samples()]:
        assert len(sample.label_values) == len(sample.descriptor.labels)


def test_scrape_preserves_order_within_collector(
    orchestrator: scrape.ScrapeOrchestrator,
):
    """Samples of one collector keep the order rows were decoded in."""
    result = orchestrator.scrape()
    status_hosts = [
        s.label_values[0]
        for s in result.samples
        if s.descriptor.name == "lsf_bhost_host_status"
    ]
    assert status_hosts == ["lsfmaster01", "compute001", "compute002"]


def test_scrape_with_filter_runs_only_selected(
    orchestrator: scrape.ScrapeOrchestrator,
    mock_runner: MagicMock,
):
    result = orchestrator.scrape(["lsf_information"])
    assert [o.collector for o in result.outcomes] == ["lsf_information"]
    mock_runner.run.assert_called_once_with("lsid")


def test_scrape_runs_collectors_concurrently(mock_runner: MagicMock):
    """Two collectors waiting on each other only finish if run in parallel."""
    barrier = threading.Barrier(2, timeout=5)

    def update(emit):
        barrier.wait()

    orch = scrape.ScrapeOrchestrator(
        _stub_registry(mock_runner, {"bhosts": update, "bqueues": update}),
    )
    result = orch.scrape()
    assert _success_by_collector(result) == {"bhosts": True, "bqueues": True}


def test_scrape_with_nothing_enabled_is_empty(mock_runner: MagicMock):
    reg = registry.build_default_registry(mock_runner, disable_defaults=True)
    result = scrape.ScrapeOrchestrator(reg).scrape()
    assert result == scrape.ScrapeResult([], [])


def test_orchestrator_rejects_non_positive_max_workers(mock_runner: MagicMock):
    with pytest.raises(ValueError, match="max_workers"):
        scrape.ScrapeOrchestrator(registry.CollectorRegistry(mock_runner), max_workers=0)


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------


def test_failing_collector_does_not_affect_others(
    orchestrator: scrape.ScrapeOrchestrator,
    outputs: dict,
):
    """One failed command yields exactly one success=0 and partial results."""
    outputs["lsload"] = ExecutionError(["lsload", "-w"], "exit status 255")

    result = orchestrator.scrape()

    failed = [o.collector for o in result.outcomes if not o.success]
    assert failed == ["lsload"]
    names = {s.descriptor.name for s in result.samples}
    assert not any(name.startswith("lsf_lsload_") for name in names)
    assert "lsf_bhost_njobs_count" in names
    success_values = [
        s.value for s in result.meta_samples() if s.descriptor is scrape.SCRAPE_SUCCESS
    ]
    assert success_values.count(0) == 1
    assert success_values.count(1) == len(ALL_NAMES) - 1


def test_unexpected_exception_marks_collector_failed(mock_runner: MagicMock):
    """Any error other than a label mismatch is a failed collector."""

    def broken(emit):
        raise RuntimeError("bug")

    orch = scrape.ScrapeOrchestrator(
        _stub_registry(mock_runner, {"bhosts": lambda emit: None, "lsload": broken}),
    )
    result = orch.scrape()
    assert _success_by_collector(result) == {"bhosts": True, "lsload": False}


def test_label_cardinality_error_propagates(mock_runner: MagicMock):
    """A collector emitting a malformed sample fails the scrape loudly."""
    descriptor = MetricDescriptor.build("test", "value", "Test.", ("a", "b"))

    def malformed(emit):
        emit(descriptor.sample(1, "only-one"))

    orch = scrape.ScrapeOrchestrator(_stub_registry(mock_runner, {"lsfjob": malformed}))
    with pytest.raises(LabelCardinalityError):
        orch.scrape()


def test_unknown_filter_fails_before_any_command(
    orchestrator: scrape.ScrapeOrchestrator,
    mock_runner: MagicMock,
):
    """Scrape setup fails with no command executed."""
    with pytest.raises(ConfigurationError, match="missing collector: slurm"):
        orchestrator.scrape(["bhosts", "slurm"])
    mock_runner.run.assert_not_called()


def test_disabled_filter_fails_before_any_command(mock_runner: MagicMock):
    reg = registry.build_default_registry(mock_runner, overrides={"lsfjob": False})
    with pytest.raises(ConfigurationError, match="disabled collector: lsfjob"):
        scrape.ScrapeOrchestrator(reg).scrape(["lsfjob"])
    mock_runner.run.assert_not_called()


# ---------------------------------------------------------------------------
# Prometheus adapter
# ---------------------------------------------------------------------------


def test_lsf_collector_yields_meta_families(orchestrator: scrape.ScrapeOrchestrator):
    families = {m.name: m for m in scrape.LsfCollector(orchestrator).collect()}

    duration = families["lsf_scrape_collector_duration_seconds"]
    success = families["lsf_scrape_collector_success"]
    assert sorted(s.labels["collector"] for s in duration.samples) == ALL_NAMES
    assert {s.value for s in success.samples} == {1.0}


def test_lsf_collector_honours_filters(orchestrator: scrape.ScrapeOrchestrator):
    collector = scrape.LsfCollector(orchestrator, ["bqueues"])
    families = {m.name: m for m in collector.collect()}
    assert "lsf_bqueues_status" in families
    assert "lsf_bhost_host_status" not in families


def test_lsf_collector_renders_exposition(orchestrator: scrape.ScrapeOrchestrator):
    prom_registry = prometheus_client.CollectorRegistry()
    prom_registry.register(scrape.LsfCollector(orchestrator))

    text = prometheus_client.generate_latest(prom_registry).decode()

    assert 'lsf_bhost_host_status{host_name="compute001"} 4.0' in text
    assert 'lsf_scrape_collector_success{collector="bhosts"} 1.0' in text
