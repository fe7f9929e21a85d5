"""Tests for metric descriptors, samples and family grouping."""

import dataclasses

import pytest

from lsf_prometheus_exporter import metrics
from lsf_prometheus_exporter.errors import LabelCardinalityError


@pytest.fixture
def descriptor() -> metrics.MetricDescriptor:
    return metrics.MetricDescriptor.build(
        "bhost",
        "njobs_count",
        "Jobs on the host.",
        ("host_name",),
    )


def test_build_qualifies_name_with_namespace(descriptor: metrics.MetricDescriptor):
    assert descriptor.name == "lsf_bhost_njobs_count"
    assert descriptor.labels == ("host_name",)


def test_build_fqname_skips_empty_subsystem():
    assert metrics.build_fqname("", "up") == "lsf_up"


def test_descriptor_is_immutable(descriptor: metrics.MetricDescriptor):
    with pytest.raises(dataclasses.FrozenInstanceError):
        descriptor.name = "other"


def test_sample_carries_value_and_labels(descriptor: metrics.MetricDescriptor):
    sample = descriptor.sample(4, "hostA")
    assert sample.descriptor is descriptor
    assert sample.value == 4.0
    assert sample.label_values == ("hostA",)


@pytest.mark.parametrize("label_values", [(), ("hostA", "extra")])
def test_sample_label_count_mismatch_fails_fast(
    descriptor: metrics.MetricDescriptor,
    label_values: tuple[str, ...],
):
    """A wrong number of label values is a programming error."""
    with pytest.raises(LabelCardinalityError):
        descriptor.sample(1, *label_values)


def test_to_metric_families_groups_by_descriptor(
    descriptor: metrics.MetricDescriptor,
):
    """Samples of one descriptor form one family, in first-seen order."""
    other = metrics.MetricDescriptor.build("bhost", "host_status", "Status.", ("host_name",))
    samples = [
        descriptor.sample(1, "a"),
        other.sample(1, "a"),
        descriptor.sample(2, "b"),
    ]

    families = list(metrics.to_metric_families(samples))

    assert [f.name for f in families] == ["lsf_bhost_njobs_count", "lsf_bhost_host_status"]
    actual_values = [(s.labels["host_name"], s.value) for s in families[0].samples]
    assert actual_values == [("a", 1.0), ("b", 2.0)]
