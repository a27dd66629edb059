"""Dependency injection container."""

import logging
from typing import Any, Callable, Optional, Sequence

from ..config import ContainerConfig
from ..errors import ContainerDisposed, DisposalError
from ..interfaces import (
    ContainerMetrics,
    FactoryStrategy,
    InstanceStrategy,
    ServiceKey,
    ServiceLifecycle,
    ServiceLifetime,
    ServiceMetadata,
    Strategy,
    ValidationResult,
    describe_key,
)
from . import introspection
from .descriptors import DescriptorStore, ServiceDescriptor, ServiceView, build_descriptor
from .resolver import Resolver
from .scopes import ScopeDisposer, ScopeManager, dispose_records

logger = logging.getLogger(__name__)


class Container:
    """Dependency injection container.

    Maps tokens to construction strategies, caches instances according to
    their lifetime, and tears everything down in reverse order on dispose.
    Containers are plain objects: create one, pass it to whoever needs it.

    Usage:
        container = Container()
        container.register_singleton(LOGGER, Logger)
        container.register_scoped(CONN, Connection, dependencies=[LOGGER],
                                  dispose_hook="close")

        logger = await container.resolve(LOGGER)

        async with container.create_scope("req-1") as scope_id:
            conn = await container.resolve(CONN, scope_id)

        await container.dispose()
    """

    def __init__(self, config: Optional[ContainerConfig] = None):
        self.config = config or ContainerConfig()
        self._store = DescriptorStore()
        self._metrics = introspection.MetricsRecorder(track_timings=self.config.track_timings)
        self._scopes = ScopeManager(on_lifecycle=self._on_lifecycle)
        self._resolver = Resolver(
            self._store,
            self._scopes,
            self._metrics,
            self.config,
            owner=self,
            on_lifecycle=self._on_lifecycle,
        )
        self._disposed = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register(
        self,
        token: ServiceKey,
        strategy: Strategy | Callable[..., Any],
        lifetime: ServiceLifetime,
        *,
        dependencies: Sequence[ServiceKey] = (),
        init_hook: Optional[str] = None,
        dispose_hook: Optional[str] = None,
        tags: Sequence[str] = (),
        description: Optional[str] = None,
    ) -> "Container":
        """Store a descriptor for ``token``, replacing any earlier one.

        Args:
            token: Key callers resolve by
            strategy: A strategy object, or a class/callable used as a
                constructor receiving the resolved dependencies
            lifetime: Caching policy
            dependencies: Tokens resolved, in order, before construction
            init_hook: Method called on each new instance before caching
            dispose_hook: Method called on the instance at teardown
            tags: Labels for ``get_services_by_tag``
            description: Free text for introspection

        Returns:
            The container, so registrations can be chained.

        Raises:
            ContainerDisposed: The container has been disposed.
            ValueError: ``dependencies`` contains a token twice.
        """
        self._ensure_usable("register")
        descriptor = build_descriptor(
            strategy,
            lifetime,
            dependencies=dependencies,
            init_hook=init_hook,
            dispose_hook=dispose_hook,
            tags=tags,
            description=description,
        )
        replacing = token in self._store
        if not self._store.put(token, descriptor):
            return self
        if replacing and self._resolver.evict(token):
            logger.debug(f"Evicted cached singleton for re-registered {describe_key(token)}")
        self._metrics.record_registration()
        self._on_lifecycle(token, descriptor, ServiceLifecycle.CREATED)
        return self

    def register_singleton(self, token: ServiceKey, implementation, **options) -> "Container":
        """Register ``implementation`` with one instance per container."""
        return self.register(token, implementation, ServiceLifetime.SINGLETON, **options)

    def register_transient(self, token: ServiceKey, implementation, **options) -> "Container":
        """Register ``implementation`` with a new instance per resolve."""
        return self.register(token, implementation, ServiceLifetime.TRANSIENT, **options)

    def register_scoped(self, token: ServiceKey, implementation, **options) -> "Container":
        """Register ``implementation`` with one instance per scope."""
        return self.register(token, implementation, ServiceLifetime.SCOPED, **options)

    def register_factory(
        self,
        token: ServiceKey,
        factory: Callable[..., Any],
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
        *,
        pass_container: bool = False,
        **options,
    ) -> "Container":
        """Register a factory; it may be sync or return an awaitable."""
        strategy = FactoryStrategy(factory, pass_container=pass_container)
        return self.register(token, strategy, lifetime, **options)

    def register_instance(
        self,
        token: ServiceKey,
        value: Any,
        *,
        tags: Sequence[str] = (),
        description: Optional[str] = None,
    ) -> "Container":
        """Register a pre-built value, returned unchanged on every resolve."""
        return self.register(
            token,
            InstanceStrategy(value),
            ServiceLifetime.SINGLETON,
            tags=tags,
            description=description,
        )

    # ------------------------------------------------------------------
    # Resolution and scopes
    # ------------------------------------------------------------------
    async def resolve(self, token: ServiceKey, scope_id: Optional[str] = None) -> Any:
        """Return the instance for ``token``.

        Args:
            token: Registered key
            scope_id: Active scope, required for SCOPED services

        Raises:
            NotRegistered, CircularDependency, ScopeRequired, UnknownScope,
            ConstructionFailed, ResolutionDepthExceeded, ContainerDisposed
        """
        if self._disposed:
            self._metrics.record_error()
            raise ContainerDisposed("resolve")
        return await self._resolver.resolve(token, scope_id)

    def create_scope(self, name: str) -> ScopeDisposer:
        """Open a named scope and return its disposer.

        Raises:
            DuplicateScope: ``name`` is already active.
            ContainerDisposed: The container has been disposed.
        """
        self._ensure_usable("create_scope")
        self._scopes.create(name)
        return ScopeDisposer(name, self._scopes.dispose)

    @property
    def active_scopes(self) -> list[str]:
        return self._scopes.names

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def is_registered(self, token: ServiceKey) -> bool:
        return token in self._store

    def get_metadata(self, token: ServiceKey) -> Optional[ServiceMetadata]:
        descriptor = self._store.get(token)
        return descriptor.snapshot() if descriptor else None

    def get_all_services(self) -> ServiceView:
        return self._store.view()

    def get_services_by_tag(self, tag: str) -> list:
        return self._store.tokens_with_tag(tag)

    def get_metrics(self) -> ContainerMetrics:
        return self._metrics.snapshot()

    def validate(self) -> ValidationResult:
        """Check that every declared dependency is registered."""
        return introspection.validate_store(self._store)

    def dependency_graph(self) -> dict:
        return introspection.dependency_graph(self._store)

    def find_cycles(self) -> list[list]:
        return introspection.find_cycles(self._store)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------
    @property
    def is_disposed(self) -> bool:
        return self._disposed

    async def dispose(self) -> None:
        """Dispose scopes, then singletons, then mark the container unusable.

        Scopes are disposed in creation order; singletons LIFO by
        construction order. Every hook runs even if earlier ones fail.
        Constructions already in flight are awaited first so their instances
        are disposed too, so this must not be awaited from inside a
        factory or hook.

        Raises:
            DisposalError: After the full sweep, if any dispose hook raised.
        """
        if self._disposed:
            return
        self._disposed = True

        scope_count = len(self._scopes.names)
        await self._resolver.settle()
        errors = await self._scopes.dispose_all()
        # Scoped constructions may have started singleton dependencies
        await self._resolver.settle()
        singletons = self._resolver.take_singletons()
        errors.extend(await dispose_records(singletons, self._on_lifecycle))

        logger.info(
            f"Container disposed: {scope_count} scope(s), {len(singletons)} singleton(s), "
            f"metrics={self._metrics.snapshot().to_dict()}"
        )
        if errors:
            raise DisposalError(errors)

    async def __aenter__(self) -> "Container":
        self._ensure_usable("enter")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.dispose()

    def __contains__(self, token: ServiceKey) -> bool:
        return token in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        names = ", ".join(describe_key(t) for t in self._store.tokens())
        return f"Container(services=[{names}], disposed={self._disposed})"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _ensure_usable(self, operation: str) -> None:
        if self._disposed:
            raise ContainerDisposed(operation)

    def _on_lifecycle(
        self,
        token: ServiceKey,
        descriptor: ServiceDescriptor,
        phase: ServiceLifecycle,
    ) -> None:
        descriptor.lifecycle = phase
        if self.config.lifecycle_logging:
            logger.debug(
                f"Service lifecycle event: {describe_key(token)} -> {phase.value} "
                f"({descriptor.lifetime.value})"
            )
