"""Load index collector for LSF.

Runs ``lsload -w`` and generates per-host run queue lengths, CPU
utilization, paging rate, login users, idle time, available tmp/swap/memory
space and the load status code. Unavailable hosts only report a status; their
other columns are treated as ``-`` and exported as -1.
"""

import functools
from collections.abc import Iterator
from dataclasses import dataclass

from .. import lsfcli, normalize
from ..collector import CommandCollector, normalized
from ..metrics import MetricDescriptor, TypedSample

NAME = "lsload"
SUBSYSTEM = "lsload"
LABELS = ("host_name",)


@dataclass
class LoadMetric:
    """Load indices for a single host. Sizes are in KiB."""

    host_name: str
    status: int = 0
    r15s: float = -1.0
    r1m: float = -1.0
    r15m: float = -1.0
    ut: float = -1.0
    pg: float = -1.0
    ls: float = -1.0
    it: float = -1.0
    tmp: float = -1.0
    swp: float = -1.0
    mem: float = -1.0


@dataclass(frozen=True)
class LoadDescriptors:
    r15s: MetricDescriptor
    r1m: MetricDescriptor
    r15m: MetricDescriptor
    ut: MetricDescriptor
    pg: MetricDescriptor
    ls: MetricDescriptor
    it: MetricDescriptor
    tmp: MetricDescriptor
    swp: MetricDescriptor
    mem: MetricDescriptor
    status: MetricDescriptor

    @classmethod
    def build(cls) -> "LoadDescriptors":
        def desc(name: str, documentation: str) -> MetricDescriptor:
            return MetricDescriptor.build(SUBSYSTEM, name, documentation, LABELS)

        return cls(
            r15s=desc(
                "r15s",
                "The 15 second exponentially averaged CPU run queue length.",
            ),
            r1m=desc("r1m", "The 1 minute exponentially averaged CPU run queue length."),
            r15m=desc(
                "r15m",
                "The 15 minute exponentially averaged CPU run queue length.",
            ),
            ut=desc(
                "ut",
                "The CPU utilization exponentially averaged over the last "
                "minute, in percent.",
            ),
            pg=desc(
                "paging_rate",
                "The memory paging rate exponentially averaged over the last "
                "minute, in pages per second.",
            ),
            ls=desc("login_users_count", "The number of current login users."),
            it=desc(
                "idle_time",
                "The idle time of the host (keyboard not touched on all "
                "logged in sessions), in minutes.",
            ),
            tmp=desc(
                "tmp_kb",
                "The amount of free space in /tmp, in KiB.",
            ),
            swp=desc("swp_kb", "The amount of available swap space, in KiB."),
            mem=desc("mem_kb", "The amount of available RAM, in KiB."),
            status=desc(
                "host_status",
                "The load status of the host. 0:unknown, 1:ok, 2:-ok, 3:busy, "
                "4:lockW, 5:lockU, 6:unavail",
            ),
        )

    def all(self) -> tuple[MetricDescriptor, ...]:
        return (
            self.r15s,
            self.r1m,
            self.r15m,
            self.ut,
            self.pg,
            self.ls,
            self.it,
            self.tmp,
            self.swp,
            self.mem,
            self.status,
        )


def _index(token: str) -> str:
    # lsload prefixes indices past their busy threshold with "*"
    return token.lstrip("*")


def _transform_load(raw: lsfcli.types.RawLoadData) -> LoadMetric:
    """Transform a raw ``lsload`` row into a LoadMetric."""
    ctx = {"collector": NAME, "host_name": raw.host_name}
    limit = functools.partial(normalized, normalize.parse_limit, context=ctx)
    size = functools.partial(normalized, normalize.parse_size, context=ctx)
    return LoadMetric(
        host_name=raw.host_name,
        status=normalize.load_status(raw.status),
        r15s=limit(_index(raw.r15s), field="r15s"),
        r1m=limit(_index(raw.r1m), field="r1m"),
        r15m=limit(_index(raw.r15m), field="r15m"),
        ut=normalized(normalize.parse_percent, _index(raw.ut), field="ut", context=ctx),
        pg=limit(_index(raw.pg), field="pg"),
        ls=limit(_index(raw.ls), field="ls"),
        it=limit(_index(raw.it), field="it"),
        tmp=size(_index(raw.tmp), field="tmp"),
        swp=size(_index(raw.swp), field="swp"),
        mem=size(_index(raw.mem), field="mem"),
    )


def fetch(runner: lsfcli.CommandRunner) -> list[LoadMetric]:
    """Run ``lsload -w`` and return one metric per host.

    Raises:
        ExecutionError: If the command fails.
    """
    output = runner.run("lsload", "-w")
    records = lsfcli.decoder.decode_table(output, fill_missing=normalize.PLACEHOLDER)
    return [
        _transform_load(raw)
        for raw in lsfcli.decoder.decode_models(records, lsfcli.types.RawLoadData)
    ]


def generate_samples(
    hosts: list[LoadMetric],
    descriptors: LoadDescriptors,
) -> Iterator[TypedSample]:
    """Generate samples for every host, in decoded order."""
    for host in hosts:
        yield descriptors.r15s.sample(host.r15s, host.host_name)
        yield descriptors.r1m.sample(host.r1m, host.host_name)
        yield descriptors.r15m.sample(host.r15m, host.host_name)
        yield descriptors.ut.sample(host.ut, host.host_name)
        yield descriptors.pg.sample(host.pg, host.host_name)
        yield descriptors.ls.sample(host.ls, host.host_name)
        yield descriptors.it.sample(host.it, host.host_name)
        yield descriptors.tmp.sample(host.tmp, host.host_name)
        yield descriptors.swp.sample(host.swp, host.host_name)
        yield descriptors.mem.sample(host.mem, host.host_name)
        yield descriptors.status.sample(host.status, host.host_name)


def new_collector(runner: lsfcli.CommandRunner) -> CommandCollector[LoadMetric]:
    """Build the ``lsload`` collector with its descriptors."""
    descriptors = LoadDescriptors.build()
    return CommandCollector(
        name=NAME,
        fetcher=lambda: fetch(runner),
        generator=functools.partial(generate_samples, descriptors=descriptors),
        descriptors=descriptors.all(),
    )
