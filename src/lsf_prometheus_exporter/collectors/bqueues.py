"""Queue metrics collector for LSF.

Runs ``bqueues -w`` and generates per-queue job counts, slot limit, priority
and status code.
"""

import functools
from collections.abc import Iterator
from dataclasses import dataclass

from .. import lsfcli, normalize
from ..collector import CommandCollector, normalized
from ..metrics import MetricDescriptor, TypedSample

NAME = "bqueues"
SUBSYSTEM = "bqueues"
LABELS = ("queues_name",)


@dataclass
class QueueMetric:
    """Metrics for a single queue. ``max_jobs`` is -1 for no limit."""

    name: str
    priority: float = 0.0
    status: int = 0
    max_jobs: float = -1.0
    njobs: float = 0.0
    pending: float = 0.0
    running: float = 0.0
    suspended: float = 0.0


@dataclass(frozen=True)
class QueueDescriptors:
    njobs: MetricDescriptor
    running: MetricDescriptor
    pending: MetricDescriptor
    suspended: MetricDescriptor
    max_jobs: MetricDescriptor
    priority: MetricDescriptor
    status: MetricDescriptor

    @classmethod
    def build(cls) -> "QueueDescriptors":
        def desc(name: str, documentation: str) -> MetricDescriptor:
            return MetricDescriptor.build(SUBSYSTEM, name, documentation, LABELS)

        return cls(
            njobs=desc(
                "njobs_count",
                "The total number of tasks for jobs in the queue, including "
                "pending, running and suspended jobs.",
            ),
            running=desc(
                "runingjob_count",
                "The total number of tasks for all running jobs in the queue.",
            ),
            pending=desc(
                "pendingjob_count",
                "The total number of tasks for all pending jobs in the queue.",
            ),
            suspended=desc(
                "suspjob_count",
                "The total number of tasks for all suspended jobs in the queue.",
            ),
            max_jobs=desc(
                "maxjob_count",
                "The maximum number of job slots that can be used by the jobs "
                "from the queue. -1 indicates no limit.",
            ),
            priority=desc(
                "priority",
                "The priority of the queue. The larger the value, the higher "
                "the priority.",
            ),
            status=desc(
                "status",
                "The status of the queue. 0:unknown, 1:Open:Active, "
                "2:Open:Inact, 3:Closed:Active, 4:Closed:Inact",
            ),
        )

    def all(self) -> tuple[MetricDescriptor, ...]:
        return (
            self.njobs,
            self.running,
            self.pending,
            self.suspended,
            self.max_jobs,
            self.priority,
            self.status,
        )


def _transform_queue(raw: lsfcli.types.RawQueueData) -> QueueMetric:
    """Transform a raw ``bqueues`` row into a QueueMetric."""
    ctx = {"collector": NAME, "queue_name": raw.queue_name}
    return QueueMetric(
        name=raw.queue_name,
        priority=normalized(normalize.parse_limit, raw.prio, field="PRIO", context=ctx),
        status=normalize.queue_status(raw.status),
        max_jobs=normalized(normalize.parse_limit, raw.max, field="MAX", context=ctx),
        njobs=normalized(normalize.parse_limit, raw.njobs, field="NJOBS", context=ctx),
        pending=normalized(normalize.parse_limit, raw.pend, field="PEND", context=ctx),
        running=normalized(normalize.parse_limit, raw.run, field="RUN", context=ctx),
        suspended=normalized(normalize.parse_limit, raw.susp, field="SUSP", context=ctx),
    )


def fetch(runner: lsfcli.CommandRunner) -> list[QueueMetric]:
    """Run ``bqueues -w`` and return one metric per queue.

    Raises:
        ExecutionError: If the command fails.
    """
    output = runner.run("bqueues", "-w")
    records = lsfcli.decoder.decode_table(output)
    return [
        _transform_queue(raw)
        for raw in lsfcli.decoder.decode_models(records, lsfcli.types.RawQueueData)
    ]


def generate_samples(
    queues: list[QueueMetric],
    descriptors: QueueDescriptors,
) -> Iterator[TypedSample]:
    """Generate samples for every queue, in decoded order."""
    for queue in queues:
        yield descriptors.njobs.sample(queue.njobs, queue.name)
        yield descriptors.running.sample(queue.running, queue.name)
        yield descriptors.pending.sample(queue.pending, queue.name)
        yield descriptors.suspended.sample(queue.suspended, queue.name)
        yield descriptors.max_jobs.sample(queue.max_jobs, queue.name)
        yield descriptors.priority.sample(queue.priority, queue.name)
        yield descriptors.status.sample(queue.status, queue.name)


def new_collector(runner: lsfcli.CommandRunner) -> CommandCollector[QueueMetric]:
    """Build the ``bqueues`` collector with its descriptors."""
    descriptors = QueueDescriptors.build()
    return CommandCollector(
        name=NAME,
        fetcher=lambda: fetch(runner),
        generator=functools.partial(generate_samples, descriptors=descriptors),
        descriptors=descriptors.all(),
    )
