"""Static host information collector for LSF.

Runs ``lshosts -w`` and generates per-host memory, swap, CPU count and CPU
factor, labelled with the host type, model, server type and resources. The
RESOURCES column may contain spaces, so rows are decoded in loose mode.
"""

import functools
from collections.abc import Iterator
from dataclasses import dataclass

from .. import lsfcli, normalize
from ..collector import CommandCollector, normalized
from ..metrics import MetricDescriptor, TypedSample

NAME = "lshosts"
SUBSYSTEM = "lshosts"
LABELS = ("host_name", "host_type", "host_model", "server_type", "resource_type")

# HOST_NAME type model cpuf ncpus maxmem maxswp server
POSITIONAL_COLUMNS = 8


@dataclass
class HostMetric:
    """Static configuration of a single host. Sizes are in KiB."""

    name: str
    host_type: str = ""
    model: str = ""
    server_type: str = "unknown"
    resources: str = ""
    cpuf: float = -1.0
    ncpus: float = -1.0
    max_mem: float = -1.0
    max_swp: float = -1.0

    @property
    def labels(self) -> tuple[str, ...]:
        return (self.name, self.host_type, self.model, self.server_type, self.resources)


@dataclass(frozen=True)
class HostDescriptors:
    max_mem: MetricDescriptor
    max_swp: MetricDescriptor
    ncpus: MetricDescriptor
    cpuf: MetricDescriptor

    @classmethod
    def build(cls) -> "HostDescriptors":
        def desc(name: str, documentation: str) -> MetricDescriptor:
            return MetricDescriptor.build(SUBSYSTEM, name, documentation, LABELS)

        return cls(
            max_mem=desc(
                "max_mem",
                "The maximum amount of physical memory available for user "
                "processes, in KiB.",
            ),
            max_swp=desc("max_swp", "The total available swap space, in KiB."),
            ncpus=desc(
                "ncpus",
                "The number of processors on this host. -1 if unknown.",
            ),
            cpuf=desc(
                "cpuf",
                "The relative CPU performance factor. The faster the CPU, the "
                "larger the CPU factor.",
            ),
        )

    def all(self) -> tuple[MetricDescriptor, ...]:
        return (self.max_mem, self.max_swp, self.ncpus, self.cpuf)


def _transform_host(raw: lsfcli.types.RawHostData) -> HostMetric:
    """Transform a raw ``lshosts`` row into a HostMetric."""
    ctx = {"collector": NAME, "host_name": raw.host_name}
    return HostMetric(
        name=raw.host_name,
        host_type=raw.host_type,
        model=raw.model,
        server_type=normalize.server_type(raw.server),
        resources=normalize.strip_parens(raw.resources),
        cpuf=normalized(normalize.parse_limit, raw.cpuf, field="cpuf", context=ctx),
        ncpus=normalized(normalize.parse_limit, raw.ncpus, field="ncpus", context=ctx),
        max_mem=normalized(normalize.parse_size, raw.maxmem, field="maxmem", context=ctx),
        max_swp=normalized(normalize.parse_size, raw.maxswp, field="maxswp", context=ctx),
    )


def fetch(runner: lsfcli.CommandRunner) -> list[HostMetric]:
    """Run ``lshosts -w`` and return one metric per host.

    Raises:
        ExecutionError: If the command fails.
    """
    output = runner.run("lshosts", "-w")
    records = lsfcli.decoder.decode_loose(
        output,
        positional=POSITIONAL_COLUMNS,
        rest_column="RESOURCES",
    )
    return [
        _transform_host(raw)
        for raw in lsfcli.decoder.decode_models(records, lsfcli.types.RawHostData)
    ]


def generate_samples(
    hosts: list[HostMetric],
    descriptors: HostDescriptors,
) -> Iterator[TypedSample]:
    """Generate samples for every host, in decoded order."""
    for host in hosts:
        yield descriptors.max_mem.sample(host.max_mem, *host.labels)
        yield descriptors.max_swp.sample(host.max_swp, *host.labels)
        yield descriptors.ncpus.sample(host.ncpus, *host.labels)
        yield descriptors.cpuf.sample(host.cpuf, *host.labels)


def new_collector(runner: lsfcli.CommandRunner) -> CommandCollector[HostMetric]:
    """Build the ``lshosts`` collector with its descriptors."""
    descriptors = HostDescriptors.build()
    return CommandCollector(
        name=NAME,
        fetcher=lambda: fetch(runner),
        generator=functools.partial(generate_samples, descriptors=descriptors),
        descriptors=descriptors.all(),
    )
