"""Cluster identity collector for LSF.

Runs ``lsid`` and exports a constant ``lsf_cluster_info`` gauge labelled with
the cluster name, master host name and LSF version found in its free-text
output. Missing pieces are exported as empty labels.
"""

import functools
import re
from collections.abc import Iterator
from dataclasses import dataclass

import structlog

from .. import lsfcli
from ..collector import CommandCollector
from ..metrics import MetricDescriptor, TypedSample

logger = structlog.get_logger(__name__)

NAME = "lsf_information"

CLUSTER_NAME_RE = re.compile(r"My\s+cluster\s+name\s+is\s+(\S+)")
MASTER_NAME_RE = re.compile(r"My\s+master\s+name\s+is\s+(\S+)")
VERSION_RE = re.compile(r"(\d+(?:\.\d+)+)")


@dataclass(frozen=True)
class ClusterIdentity:
    """Cluster name, master host and LSF version reported by ``lsid``."""

    cluster_name: str = ""
    master_name: str = ""
    version: str = ""


def _first_group(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(1) if match else ""


def parse_lsid(text: str) -> ClusterIdentity:
    """Extract the cluster identity from ``lsid`` output.

    Example output::

        IBM Spectrum LSF Standard 10.1.0.13, Jan 20 2023
        Copyright International Business Machines Corp. 1992, 2016.

        My cluster name is cluster1
        My master name is lsfmaster01
    """
    return ClusterIdentity(
        cluster_name=_first_group(CLUSTER_NAME_RE, text),
        master_name=_first_group(MASTER_NAME_RE, text),
        version=_first_group(VERSION_RE, text),
    )


def build_descriptor() -> MetricDescriptor:
    return MetricDescriptor.build(
        "cluster",
        "info",
        "A metric with a constant '1' value labeled by the cluster name, "
        "master name and version of IBM Spectrum LSF.",
        ("clustername", "mastername", "version"),
    )


def fetch(runner: lsfcli.CommandRunner) -> list[ClusterIdentity]:
    """Run ``lsid`` and return the parsed identity.

    Raises:
        ExecutionError: If the command fails.
    """
    output = runner.run("lsid")
    identity = parse_lsid(output.decode(errors="replace"))
    logger.debug(
        "Parsed cluster identity",
        cluster_name=identity.cluster_name,
        master_name=identity.master_name,
        version=identity.version,
    )
    return [identity]


def generate_samples(
    identities: list[ClusterIdentity],
    descriptor: MetricDescriptor,
) -> Iterator[TypedSample]:
    for identity in identities:
        yield descriptor.sample(
            1,
            identity.cluster_name,
            identity.master_name,
            identity.version,
        )


def new_collector(runner: lsfcli.CommandRunner) -> CommandCollector[ClusterIdentity]:
    """Build the ``lsf_information`` collector."""
    descriptor = build_descriptor()
    return CommandCollector(
        name=NAME,
        fetcher=lambda: fetch(runner),
        generator=functools.partial(generate_samples, descriptor=descriptor),
        descriptors=(descriptor,),
    )
