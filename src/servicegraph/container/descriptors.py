"""Descriptor store: what was registered under each token."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional, Sequence

from ..interfaces import (
    ConstructorStrategy,
    FactoryStrategy,
    InstanceStrategy,
    ServiceEntry,
    ServiceKey,
    ServiceLifecycle,
    ServiceLifetime,
    ServiceMetadata,
    Strategy,
    describe_key,
)

logger = logging.getLogger(__name__)


def strategy_kind(strategy: Strategy) -> str:
    if isinstance(strategy, ConstructorStrategy):
        return "constructor"
    if isinstance(strategy, FactoryStrategy):
        return "factory"
    if isinstance(strategy, InstanceStrategy):
        return "instance"
    raise TypeError(f"Unknown strategy: {strategy!r}")


@dataclass
class ServiceDescriptor:
    """Construction recipe and metadata for one token.

    ``lifecycle`` and ``registered_at`` are bookkeeping and do not take part
    in equality, so two registrations with the same recipe compare equal.
    """
    strategy: Strategy
    lifetime: ServiceLifetime
    dependencies: tuple = ()
    init_hook: Optional[str] = None
    dispose_hook: Optional[str] = None
    tags: frozenset = frozenset()
    description: Optional[str] = None
    lifecycle: ServiceLifecycle = field(default=ServiceLifecycle.CREATED, compare=False)
    registered_at: datetime = field(default_factory=datetime.utcnow, compare=False)

    def __post_init__(self):
        strategy_kind(self.strategy)
        self.dependencies = tuple(self.dependencies)
        seen = set()
        for dep in self.dependencies:
            if dep in seen:
                raise ValueError(f"Duplicate dependency: {describe_key(dep)}")
            seen.add(dep)
        self.tags = frozenset(self.tags)

    def snapshot(self) -> ServiceMetadata:
        return ServiceMetadata(
            lifetime=self.lifetime,
            strategy_kind=strategy_kind(self.strategy),
            dependencies=self.dependencies,
            init_hook=self.init_hook,
            dispose_hook=self.dispose_hook,
            tags=self.tags,
            description=self.description,
            lifecycle=self.lifecycle,
            registered_at=self.registered_at,
        )


class ServiceView:
    """Lazy, restartable view of registered services in registration order.

    Each iteration walks the store afresh, so it reflects registrations made
    after the view was created.
    """

    def __init__(self, store: "DescriptorStore"):
        self._store = store

    def __iter__(self) -> Iterator[ServiceEntry]:
        for token, descriptor in list(self._store.items()):
            yield ServiceEntry(token=token, metadata=descriptor.snapshot())

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"ServiceView(count={len(self)})"


class DescriptorStore:
    """Holds one descriptor per token, in registration order."""

    def __init__(self):
        self._descriptors: dict[ServiceKey, ServiceDescriptor] = {}

    def put(self, token: ServiceKey, descriptor: ServiceDescriptor) -> bool:
        """Insert or replace the descriptor for ``token``.

        Returns:
            False when an identical descriptor was already stored and
            nothing changed, True otherwise.
        """
        existing = self._descriptors.get(token)
        if existing is not None and existing == descriptor:
            return False
        if existing is not None:
            # Keeps the token's original position in registration order
            logger.debug(f"Replacing registration for {describe_key(token)}")
        self._descriptors[token] = descriptor
        return True

    def get(self, token: ServiceKey) -> Optional[ServiceDescriptor]:
        return self._descriptors.get(token)

    def items(self):
        return self._descriptors.items()

    def tokens(self) -> list:
        return list(self._descriptors)

    def tokens_with_tag(self, tag: str) -> list:
        return [t for t, d in self._descriptors.items() if tag in d.tags]

    def view(self) -> ServiceView:
        return ServiceView(self)

    def __contains__(self, token: ServiceKey) -> bool:
        return token in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)


def build_descriptor(
    strategy: Strategy,
    lifetime: ServiceLifetime,
    dependencies: Sequence[ServiceKey] = (),
    init_hook: Optional[str] = None,
    dispose_hook: Optional[str] = None,
    tags: Sequence[str] = (),
    description: Optional[str] = None,
) -> ServiceDescriptor:
    """Create a descriptor, wrapping bare callables as constructor strategies."""
    if not isinstance(strategy, (ConstructorStrategy, FactoryStrategy, InstanceStrategy)):
        if not callable(strategy):
            raise TypeError(f"Implementation must be callable or a strategy, got {strategy!r}")
        strategy = ConstructorStrategy(strategy)
    return ServiceDescriptor(
        strategy=strategy,
        lifetime=lifetime,
        dependencies=tuple(dependencies),
        init_hook=init_hook,
        dispose_hook=dispose_hook,
        tags=frozenset(tags),
        description=description,
    )
