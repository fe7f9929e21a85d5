"""Command collector implementation using composition pattern.

Provides a reusable collector that separates concerns between running an LSF
command and decoding its output, and turning the decoded records into metric
samples, through dependency injection.
"""

from collections.abc import Callable, Iterator
from typing import Any, Generic, Protocol, TypeAlias, TypeVar

import structlog

from .errors import NormalizationError
from .metrics import Emit, MetricDescriptor, TypedSample

logger = structlog.get_logger(__name__)

T = TypeVar("T")


Fetcher: TypeAlias = Callable[[], list[T]]
SampleGenerator: TypeAlias = Callable[[list[T]], Iterator[TypedSample]]


class Collector(Protocol):
    """Interface the scrape orchestrator runs."""

    name: str

    def update(self, emit: Emit) -> None: ...


class CommandCollector(Generic[T]):
    """Collector for one LSF command using composition pattern.

    Separates concerns through dependency injection:
    - Command execution and decoding (via Fetcher with the runner injected)
    - Sample generation (via SampleGenerator with descriptors injected)

    Instances are immutable after construction and safe to share between
    concurrent scrapes. Errors from the fetcher propagate to the caller,
    which reports them as a failed scrape for this collector.
    """

    def __init__(
        self,
        name: str,
        fetcher: Fetcher[T],
        generator: SampleGenerator[T],
        descriptors: tuple[MetricDescriptor, ...],
    ):
        """Initialize the collector.

        Args:
            name: Collector name used for selection and in meta-metrics.
            fetcher: Function running the command and returning records.
            generator: Function turning records into samples.
            descriptors: Every descriptor the generator may emit.
        """
        self.name = name
        self.descriptors = descriptors
        self._fetcher = fetcher
        self._generator = generator
        self._logger = logger.bind(collector=name)

    def update(self, emit: Emit) -> None:
        """Run the command and emit one sample per descriptor and record.

        Raises:
            ExecutionError: If the command fails.
        """
        records = self._fetcher()
        count = 0
        for sample in self._generator(records):
            emit(sample)
            count += 1
        self._logger.debug("Collector updated", records=len(records), samples=count)


def normalized(
    func: Callable[[str], float],
    value: str,
    *,
    field: str,
    context: dict[str, Any] | None = None,
) -> float:
    """Apply a numeric normalizer, falling back to -1 on failure.

    The sample is still emitted with the sentinel so the series stays
    continuous across scrapes.
    """
    try:
        return func(value)
    except NormalizationError as e:
        logger.warning(
            "Failed to normalize field",
            field=field,
            value=value,
            error=str(e),
            **(context or {}),
        )
        return -1.0
