"""Registry of collector kinds.

Holds every known collector kind with its factory and enabled flag, and
hands out collector instances, constructing each kind at most once.
"""

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import structlog

from . import lsfcli
from .cache import AtomicLazyCache
from .collector import Collector
from .collectors import bhosts, bjobs, bqueues, lshosts, lsid, lsload
from .errors import ConfigurationError

logger = structlog.get_logger(__name__)

Factory = Callable[[lsfcli.CommandRunner], Collector]


class CollectorKind(enum.Enum):
    """The closed set of collectors, valued by their external name."""

    BHOSTS = bhosts.NAME
    BQUEUES = bqueues.NAME
    LSLOAD = lsload.NAME
    LSHOSTS = lshosts.NAME
    LSF_INFORMATION = lsid.NAME
    LSFJOB = bjobs.NAME


DEFAULT_FACTORIES: dict[CollectorKind, Factory] = {
    CollectorKind.BHOSTS: bhosts.new_collector,
    CollectorKind.BQUEUES: bqueues.new_collector,
    CollectorKind.LSLOAD: lsload.new_collector,
    CollectorKind.LSHOSTS: lshosts.new_collector,
    CollectorKind.LSF_INFORMATION: lsid.new_collector,
    CollectorKind.LSFJOB: bjobs.new_collector,
}


@dataclass
class _Registration:
    factory: Factory
    enabled: bool
    forced: bool = False


class CollectorRegistry:
    """Collector kinds known to the exporter and their enabled state.

    Registration happens at startup. Instances are built lazily on the first
    scrape that selects them and then reused for the lifetime of the
    registry.
    """

    def __init__(self, runner: lsfcli.CommandRunner):
        """Initialize an empty registry.

        Args:
            runner: Command runner injected into every collector factory.
        """
        self._runner = runner
        self._registrations: dict[str, _Registration] = {}
        self._instances: AtomicLazyCache[str, Collector] = AtomicLazyCache()

    def register(
        self,
        kind: CollectorKind,
        factory: Factory,
        default_enabled: bool = True,
    ) -> None:
        """Register a collector kind.

        Raises:
            ValueError: If the kind is already registered.
        """
        if kind.value in self._registrations:
            msg = f"collector already registered: {kind.value}"
            raise ValueError(msg)
        self._registrations[kind.value] = _Registration(factory, default_enabled)
        logger.info(
            "Registered collector",
            collector=kind.value,
            default_enabled=default_enabled,
        )

    def set_enabled(self, name: str, enabled: bool) -> None:
        """Explicitly enable or disable a collector.

        Raises:
            ConfigurationError: If no collector has this name.
        """
        registration = self._registrations.get(name)
        if registration is None:
            msg = f"missing collector: {name}"
            raise ConfigurationError(msg)
        registration.enabled = enabled
        registration.forced = True

    def disable_defaults(self) -> None:
        """Disable every collector that was not explicitly enabled."""
        for registration in self._registrations.values():
            if not registration.forced:
                registration.enabled = False

    def enabled_names(self) -> list[str]:
        return sorted(n for n, r in self._registrations.items() if r.enabled)

    def resolve(self, filters: Iterable[str] = ()) -> dict[str, Collector]:
        """Return the collectors selected by ``filters``.

        With no filters every enabled collector is returned. All filter names
        are validated before anything is constructed.

        Raises:
            ConfigurationError: If a filter names an unknown or disabled
                collector.
        """
        selected = set()
        for name in filters:
            registration = self._registrations.get(name)
            if registration is None:
                msg = f"missing collector: {name}"
                raise ConfigurationError(msg)
            if not registration.enabled:
                msg = f"disabled collector: {name}"
                raise ConfigurationError(msg)
            selected.add(name)

        collectors = {}
        for name, registration in self._registrations.items():
            if not registration.enabled or (selected and name not in selected):
                continue
            collectors[name] = self._instances.get_or_create(
                name,
                lambda factory=registration.factory: factory(self._runner),
            )
        return collectors


def build_default_registry(
    runner: lsfcli.CommandRunner,
    overrides: dict[str, bool] | None = None,
    disable_defaults: bool = False,
) -> CollectorRegistry:
    """Create a registry with every LSF collector registered.

    Args:
        runner: Command runner shared by all collectors.
        overrides: Collector name to enabled flag.
        disable_defaults: Disable every collector not enabled in overrides.

    Raises:
        ConfigurationError: If overrides name an unknown collector.
    """
    registry = CollectorRegistry(runner)
    for kind, factory in DEFAULT_FACTORIES.items():
        registry.register(kind, factory)

    for name, enabled in (overrides or {}).items():
        registry.set_enabled(name, enabled)
    if disable_defaults:
        registry.disable_defaults()

    logger.info("Enabled collectors", collectors=registry.enabled_names())
    return registry
