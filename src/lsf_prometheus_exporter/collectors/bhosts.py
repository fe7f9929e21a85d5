"""Batch host metrics collector for LSF.

Runs ``bhosts -w`` and generates per-host job slot counts, slot limits and
the host status code.
"""

import functools
from collections.abc import Iterator
from dataclasses import dataclass

from .. import lsfcli, normalize
from ..collector import CommandCollector, normalized
from ..metrics import MetricDescriptor, TypedSample

NAME = "bhosts"
SUBSYSTEM = "bhost"
LABELS = ("host_name",)


@dataclass
class BhostMetric:
    """Job slot metrics for a single batch host.

    Counts are floats; ``max_jobs`` is -1 when the host has no slot limit.
    """

    host_name: str
    status: int = 0
    max_jobs: float = -1.0
    njobs: float = 0.0
    running: float = 0.0
    ssusp: float = 0.0
    ususp: float = 0.0
    reserved: float = 0.0


@dataclass(frozen=True)
class BhostDescriptors:
    njobs: MetricDescriptor
    running: MetricDescriptor
    max_jobs: MetricDescriptor
    ssusp: MetricDescriptor
    ususp: MetricDescriptor
    reserved: MetricDescriptor
    status: MetricDescriptor

    @classmethod
    def build(cls) -> "BhostDescriptors":
        def desc(name: str, documentation: str) -> MetricDescriptor:
            return MetricDescriptor.build(SUBSYSTEM, name, documentation, LABELS)

        return cls(
            njobs=desc(
                "njobs_count",
                "The number of tasks for all jobs that are dispatched to the "
                "host. The NJOBS value includes running, suspended, and chunk "
                "jobs.",
            ),
            running=desc(
                "runingjob_count",
                "The number of tasks for all running jobs on the host.",
            ),
            max_jobs=desc(
                "maxjob_count",
                "The maximum number of job slots available. -1 indicates no "
                "limit.",
            ),
            ssusp=desc(
                "ssuspjob_count",
                "The number of tasks for all system suspended jobs on the host.",
            ),
            ususp=desc(
                "ususpjob_count",
                "The number of tasks for all user suspended jobs on the host.",
            ),
            reserved=desc(
                "rsvjob_count",
                "The number of tasks for all pending jobs that have slots "
                "reserved on the host.",
            ),
            status=desc(
                "host_status",
                "The status of the host and the sbatchd daemon. 0:unknown, "
                "1:ok, 2:unavail, 3:unreach, 4:closed/closed_full, "
                "5:closed_cu_excl",
            ),
        )

    def all(self) -> tuple[MetricDescriptor, ...]:
        return (
            self.njobs,
            self.running,
            self.max_jobs,
            self.ssusp,
            self.ususp,
            self.reserved,
            self.status,
        )


def _transform_host(raw: lsfcli.types.RawBhostData) -> BhostMetric:
    """Transform a raw ``bhosts`` row into a BhostMetric."""
    ctx = {"collector": NAME, "host_name": raw.host_name}
    return BhostMetric(
        host_name=raw.host_name,
        status=normalize.host_status(raw.status),
        max_jobs=normalized(normalize.parse_limit, raw.max, field="MAX", context=ctx),
        njobs=normalized(normalize.parse_limit, raw.njobs, field="NJOBS", context=ctx),
        running=normalized(normalize.parse_limit, raw.run, field="RUN", context=ctx),
        ssusp=normalized(normalize.parse_limit, raw.ssusp, field="SSUSP", context=ctx),
        ususp=normalized(normalize.parse_limit, raw.ususp, field="USUSP", context=ctx),
        reserved=normalized(normalize.parse_limit, raw.rsv, field="RSV", context=ctx),
    )


def fetch(runner: lsfcli.CommandRunner) -> list[BhostMetric]:
    """Run ``bhosts -w`` and return one metric per host.

    Raises:
        ExecutionError: If the command fails.
    """
    output = runner.run("bhosts", "-w")
    records = lsfcli.decoder.decode_table(output)
    return [
        _transform_host(raw)
        for raw in lsfcli.decoder.decode_models(records, lsfcli.types.RawBhostData)
    ]


def generate_samples(
    hosts: list[BhostMetric],
    descriptors: BhostDescriptors,
) -> Iterator[TypedSample]:
    """Generate samples for every host, in decoded order."""
    for host in hosts:
        yield descriptors.njobs.sample(host.njobs, host.host_name)
        yield descriptors.running.sample(host.running, host.host_name)
        yield descriptors.max_jobs.sample(host.max_jobs, host.host_name)
        yield descriptors.ssusp.sample(host.ssusp, host.host_name)
        yield descriptors.ususp.sample(host.ususp, host.host_name)
        yield descriptors.reserved.sample(host.reserved, host.host_name)
        yield descriptors.status.sample(host.status, host.host_name)


def new_collector(runner: lsfcli.CommandRunner) -> CommandCollector[BhostMetric]:
    """Build the ``bhosts`` collector with its descriptors."""
    descriptors = BhostDescriptors.build()
    return CommandCollector(
        name=NAME,
        fetcher=lambda: fetch(runner),
        generator=functools.partial(generate_samples, descriptors=descriptors),
        descriptors=descriptors.all(),
    )
