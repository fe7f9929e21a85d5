"""Metric descriptors and samples produced by collectors."""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import NamedTuple, TypeAlias

from prometheus_client.core import GaugeMetricFamily

from .errors import LabelCardinalityError

NAMESPACE = "lsf"


def build_fqname(subsystem: str, name: str) -> str:
    """Join namespace, subsystem and name with underscores."""
    return "_".join(part for part in (NAMESPACE, subsystem, name) if part)


@dataclass(frozen=True)
class MetricDescriptor:
    """Immutable identity of one exported time series family."""

    name: str
    documentation: str
    labels: tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        subsystem: str,
        name: str,
        documentation: str,
        labels: Iterable[str] = (),
    ) -> "MetricDescriptor":
        return cls(build_fqname(subsystem, name), documentation, tuple(labels))

    def sample(self, value: float, *label_values: str) -> "TypedSample":
        """Build a sample for this descriptor.

        Raises:
            LabelCardinalityError: If the number of label values differs
                from the number of label names.
        """
        if len(label_values) != len(self.labels):
            msg = (
                f"{self.name}: expected {len(self.labels)} label values, "
                f"got {len(label_values)}"
            )
            raise LabelCardinalityError(msg)
        return TypedSample(self, float(value), label_values)


class TypedSample(NamedTuple):
    descriptor: MetricDescriptor
    value: float
    label_values: tuple[str, ...]


Emit: TypeAlias = Callable[[TypedSample], None]


def to_metric_families(samples: Iterable[TypedSample]) -> Iterator[GaugeMetricFamily]:
    """Group samples into gauge families, in order of first appearance."""
    families: dict[MetricDescriptor, GaugeMetricFamily] = {}
    for sample in samples:
        family = families.get(sample.descriptor)
        if family is None:
            family = GaugeMetricFamily(
                sample.descriptor.name,
                sample.descriptor.documentation,
                labels=list(sample.descriptor.labels),
            )
            families[sample.descriptor] = family
        family.add_metric(list(sample.label_values), sample.value)
    yield from families.values()
