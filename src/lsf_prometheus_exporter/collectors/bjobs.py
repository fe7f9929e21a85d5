"""Job metrics collector for LSF.

Runs ``bjobs -u all -w`` and generates a per-job status gauge labelled with
the job's attributes, plus job counts per queue and status.

``bjobs`` rows are ragged: jobs that were never dispatched have no EXEC_HOST,
job names may contain spaces and SUBMIT_TIME spans three tokens
(``Oct 19 10:00``), or four when LSB_DISPLAY_YEAR adds the year. The first
five columns are decoded positionally. The submit time is matched at the end
of the remainder and what precedes it holds the execution host and job name.

A finished job (EXIT, DONE) only has an execution host if it was dispatched.
It is taken to have one when at least two tokens precede the submit time, so
a multi-word name of a job that exited while pending is read with its first
word as the host.
"""

import functools
import re
from collections.abc import Iterator
from dataclasses import dataclass

import structlog

from .. import lsfcli, normalize
from ..collector import CommandCollector
from ..metrics import MetricDescriptor, TypedSample

logger = structlog.get_logger(__name__)

NAME = "lsfjob"
SUBSYSTEM = "bjobs"

# JOBID USER STAT QUEUE FROM_HOST
POSITIONAL_COLUMNS = 5
SUBMIT_TIME_RE = re.compile(
    r"(?<!\S)(?P<submit_time>[A-Za-z]{3}\s+\d{1,2}\s+\d{1,2}:\d{2}(?:\s+\d{4})?)\s*$",
)
NO_EXEC_HOST_STATES = frozenset({"PEND", "PSUSP"})
DISPATCHED_STATES = frozenset({"RUN", "USUSP", "SSUSP"})
NO_JOBS_PREFIX = b"No unfinished job found"


@dataclass
class JobMetric:
    """Represents a single LSF job."""

    job_id: str
    user: str = ""
    status: str = ""
    queue: str = ""
    from_host: str = ""
    exec_host: str = ""
    job_name: str = ""
    submit_time: str = ""

    @property
    def status_code(self) -> int:
        return normalize.job_status(self.status)


@dataclass(frozen=True)
class JobDescriptors:
    status: MetricDescriptor
    count_per_status: MetricDescriptor

    @classmethod
    def build(cls) -> "JobDescriptors":
        return cls(
            status=MetricDescriptor.build(
                SUBSYSTEM,
                "status",
                "The status of each unfinished job. 0:unknown, 1:PEND, "
                "2:PSUSP, 3:RUN, 4:USUSP, 5:SSUSP, 6:DONE, 7:EXIT, 8:UNKWN, "
                "9:WAIT, 10:ZOMBI",
                (
                    "id",
                    "user",
                    "status",
                    "queue",
                    "from_host",
                    "exec_host",
                    "job_name",
                ),
            ),
            count_per_status=MetricDescriptor.build(
                SUBSYSTEM,
                "count_per_status",
                "The number of jobs per queue and status.",
                ("queue", "status"),
            ),
        )

    def all(self) -> tuple[MetricDescriptor, ...]:
        return (self.status, self.count_per_status)


def _transform_job(raw: lsfcli.types.RawJobData) -> JobMetric | None:
    """Transform a raw ``bjobs`` row into a JobMetric.

    Returns:
        The job, or None if the row has no submit time or job name.
    """
    match = SUBMIT_TIME_RE.search(raw.details)
    tokens = raw.details[: match.start()].split() if match else []
    if not tokens:
        logger.warning(
            "Skipping job with truncated row",
            collector=NAME,
            job_id=raw.job_id,
            details=raw.details,
        )
        return None

    state = raw.stat.upper()
    if state in DISPATCHED_STATES:
        has_exec_host = True
    elif state in NO_EXEC_HOST_STATES:
        has_exec_host = False
    else:
        has_exec_host = len(tokens) > 1

    exec_host = tokens.pop(0) if has_exec_host else ""
    return JobMetric(
        job_id=raw.job_id,
        user=raw.user,
        status=raw.stat,
        queue=raw.queue,
        from_host=raw.from_host,
        exec_host=exec_host,
        job_name=" ".join(tokens),
        submit_time=" ".join(match["submit_time"].split()),
    )


def _count_jobs_by_queue_and_status(jobs: list[JobMetric]) -> dict[tuple[str, str], int]:
    """Count jobs grouped by (queue, status)."""
    counts: dict[tuple[str, str], int] = {}

    for job in jobs:
        key = (job.queue, job.status)
        counts[key] = counts.get(key, 0) + 1

    return counts


def fetch(runner: lsfcli.CommandRunner) -> list[JobMetric]:
    """Run ``bjobs -u all -w`` and return one metric per job.

    Raises:
        ExecutionError: If the command fails.
    """
    output = runner.run("bjobs", "-u", "all", "-w")
    if output.lstrip().startswith(NO_JOBS_PREFIX):
        return []

    records = lsfcli.decoder.decode_loose(
        output,
        positional=POSITIONAL_COLUMNS,
        rest_column="DETAILS",
    )
    jobs = []
    for raw in lsfcli.decoder.decode_models(records, lsfcli.types.RawJobData):
        job = _transform_job(raw)
        if job is not None:
            jobs.append(job)
    return jobs


def generate_samples(
    jobs: list[JobMetric],
    descriptors: JobDescriptors,
) -> Iterator[TypedSample]:
    """Generate one status sample per job, then counts per queue and status."""
    for job in jobs:
        yield descriptors.status.sample(
            job.status_code,
            job.job_id,
            job.user,
            job.status,
            job.queue,
            job.from_host,
            job.exec_host,
            job.job_name,
        )

    for (queue, status), count in _count_jobs_by_queue_and_status(jobs).items():
        yield descriptors.count_per_status.sample(count, queue, status)


def new_collector(runner: lsfcli.CommandRunner) -> CommandCollector[JobMetric]:
    """Build the ``lsfjob`` collector with its descriptors."""
    descriptors = JobDescriptors.build()
    return CommandCollector(
        name=NAME,
        fetcher=lambda: fetch(runner),
        generator=functools.partial(generate_samples, descriptors=descriptors),
        descriptors=descriptors.all(),
    )
