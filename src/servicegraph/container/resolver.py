"""Dependency resolution: lifetimes, cycle detection, construction."""

import asyncio
import inspect
import logging
import time
from typing import Any, Callable, Optional

from ..config import ContainerConfig
from ..errors import (
    CircularDependency,
    ConstructionFailed,
    ContainerError,
    NotRegistered,
    ResolutionDepthExceeded,
    ScopeRequired,
)
from ..interfaces import (
    ConstructorStrategy,
    FactoryStrategy,
    InstanceStrategy,
    ServiceKey,
    ServiceLifecycle,
    ServiceLifetime,
    describe_key,
)
from .descriptors import DescriptorStore, ServiceDescriptor
from .introspection import MetricsRecorder
from .scopes import DisposalRecord, InFlight, LifecycleCallback, ScopeManager, settle_in_flight

logger = logging.getLogger(__name__)


async def _await_if_needed(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Resolver:
    """Produces instances for registered tokens.

    Each top-level ``resolve`` call gets its own resolution stack, passed
    down the recursion, so concurrent calls never see each other's chains.
    Singleton (and per-scope) construction is guarded by an in-flight future:
    a second caller for the same token awaits the first caller's result,
    unless the wait would close a cycle across calls.
    """

    def __init__(
        self,
        store: DescriptorStore,
        scopes: ScopeManager,
        metrics: MetricsRecorder,
        config: ContainerConfig,
        owner: Any = None,
        on_lifecycle: Optional[LifecycleCallback] = None,
    ):
        self._store = store
        self._scopes = scopes
        self._metrics = metrics
        self._config = config
        self._owner = owner
        self._on_lifecycle = on_lifecycle
        self._singletons: dict[ServiceKey, Any] = {}
        self._singleton_order: list[DisposalRecord] = []
        self._in_flight: dict[ServiceKey, InFlight] = {}
        # id(stack) -> (token, owner stack) the call is currently waiting on
        self._waiting: dict[int, tuple] = {}

    async def resolve(self, token: ServiceKey, scope_id: Optional[str] = None) -> Any:
        """Resolve ``token`` as a top-level call.

        Raises:
            ContainerError: Any resolution failure. ``error_count`` is
                incremented once per failed call.
        """
        started = time.perf_counter()
        try:
            if scope_id is not None:
                self._scopes.get(scope_id)
            instance = await self._resolve(token, scope_id, [])
        except Exception as exc:
            self._metrics.record_error()
            logger.error(
                f"Service resolution failed for {describe_key(token)}"
                f"{f' in scope {scope_id}' if scope_id else ''}: {exc}"
            )
            raise
        self._metrics.record_resolution()
        self._metrics.record_timing((time.perf_counter() - started) * 1000)
        return instance

    async def _resolve(self, token: ServiceKey, scope_id: Optional[str], stack: list) -> Any:
        descriptor = self._store.get(token)
        if descriptor is None:
            raise NotRegistered(token)

        if self._config.detect_cycles and token in stack:
            self._metrics.record_cycle()
            raise CircularDependency(stack[stack.index(token):] + [token])
        if len(stack) >= self._config.max_resolution_depth:
            raise ResolutionDepthExceeded(self._config.max_resolution_depth, stack + [token])

        stack.append(token)
        try:
            if descriptor.lifetime == ServiceLifetime.SINGLETON:
                return await self._resolve_singleton(token, descriptor, scope_id, stack)
            if descriptor.lifetime == ServiceLifetime.SCOPED:
                return await self._resolve_scoped(token, descriptor, scope_id, stack)
            return await self._construct(token, descriptor, scope_id, stack)
        finally:
            stack.pop()

    async def _resolve_singleton(self, token, descriptor, scope_id, stack) -> Any:
        if token in self._singletons:
            return self._singletons[token]
        pending = self._in_flight.get(token)
        if pending is not None:
            return await self._wait_for(token, pending, stack)

        future = asyncio.get_running_loop().create_future()
        self._in_flight[token] = InFlight(future, stack)
        try:
            instance = await self._construct(token, descriptor, scope_id, stack)
        except BaseException as exc:
            _fail(future, exc)
            raise
        else:
            self._singletons[token] = instance
            self._singleton_order.append(DisposalRecord(token, instance, descriptor))
            future.set_result(instance)
            return instance
        finally:
            self._in_flight.pop(token, None)

    async def _resolve_scoped(self, token, descriptor, scope_id, stack) -> Any:
        if scope_id is None:
            raise ScopeRequired(token)
        scope = self._scopes.get(scope_id)
        if token in scope.instances:
            return scope.instances[token]
        pending = scope.in_flight.get(token)
        if pending is not None:
            return await self._wait_for(token, pending, stack)

        future = asyncio.get_running_loop().create_future()
        scope.in_flight[token] = InFlight(future, stack)
        try:
            instance = await self._construct(token, descriptor, scope_id, stack)
        except BaseException as exc:
            _fail(future, exc)
            raise
        else:
            scope.record(token, instance, descriptor)
            future.set_result(instance)
            return instance
        finally:
            scope.in_flight.pop(token, None)

    async def _wait_for(self, token: ServiceKey, pending: InFlight, stack: list) -> Any:
        """Await another call's construction of ``token``.

        Fails with CircularDependency instead of waiting when the owning
        call is itself, directly or through other calls, waiting on a
        construction this call owns.
        """
        if self._config.detect_cycles:
            chain = self._wait_cycle(token, pending.owner, stack)
            if chain is not None:
                self._metrics.record_cycle()
                raise CircularDependency(chain)

        self._waiting[id(stack)] = (token, pending.owner)
        try:
            return await asyncio.shield(pending.future)
        finally:
            self._waiting.pop(id(stack), None)

    def _wait_cycle(self, token: ServiceKey, owner: list, stack: list) -> Optional[list]:
        # Follow waits-on edges from the owner; each call waits on at most one token
        hops = [(token, owner)]
        while hops[-1][1] is not stack:
            edge = self._waiting.get(id(hops[-1][1]))
            if edge is None or len(hops) > len(self._waiting):
                return None
            hops.append(edge)

        closing = hops[-1][0]
        chain = stack[stack.index(closing):]
        for waited, waited_owner in hops[:-1]:
            chain += waited_owner[waited_owner.index(waited):]
        return chain + [closing]

    async def _construct(
        self,
        token: ServiceKey,
        descriptor: ServiceDescriptor,
        scope_id: Optional[str],
        stack: list,
    ) -> Any:
        # Dependencies first, depth-first and in declared order
        dependencies = []
        for dep in descriptor.dependencies:
            dependencies.append(await self._resolve(dep, scope_id, stack))

        self._lifecycle(token, descriptor, ServiceLifecycle.CREATING)
        strategy = descriptor.strategy
        try:
            if isinstance(strategy, ConstructorStrategy):
                instance = await _await_if_needed(strategy.cls(*dependencies))
            elif isinstance(strategy, FactoryStrategy):
                if strategy.pass_container:
                    produced = strategy.factory(self._owner)
                else:
                    produced = strategy.factory()
                instance = await _await_if_needed(produced)
            elif isinstance(strategy, InstanceStrategy):
                instance = strategy.value
            else:
                raise TypeError(f"Unknown strategy: {strategy!r}")
        except ContainerError:
            raise
        except Exception as exc:
            raise ConstructionFailed(token, exc) from exc
        self._lifecycle(token, descriptor, ServiceLifecycle.CREATED)

        if descriptor.init_hook:
            await self._run_init_hook(token, descriptor, instance)
        self._lifecycle(token, descriptor, ServiceLifecycle.READY)
        return instance

    async def _run_init_hook(self, token, descriptor, instance) -> None:
        hook = getattr(instance, descriptor.init_hook, None)
        if not callable(hook):
            logger.debug(f"{describe_key(token)} has no callable {descriptor.init_hook}(), skipping")
            return
        self._lifecycle(token, descriptor, ServiceLifecycle.INITIALIZING)
        try:
            await _await_if_needed(hook())
        except ContainerError:
            raise
        except Exception as exc:
            raise ConstructionFailed(token, exc) from exc

    def _lifecycle(self, token, descriptor, phase: ServiceLifecycle) -> None:
        if self._on_lifecycle:
            self._on_lifecycle(token, descriptor, phase)

    # ------------------------------------------------------------------
    # Cache management used by the container facade
    # ------------------------------------------------------------------
    def evict(self, token: ServiceKey) -> bool:
        """Forget a cached singleton without disposing it."""
        if token not in self._singletons:
            return False
        del self._singletons[token]
        self._singleton_order = [r for r in self._singleton_order if r.token != token]
        return True

    async def settle(self) -> None:
        """Wait until no singleton construction is in flight."""
        await settle_in_flight(self._in_flight)

    def take_singletons(self) -> list[DisposalRecord]:
        """Hand over cached singletons in construction order and clear the cache."""
        records = self._singleton_order
        self._singleton_order = []
        self._singletons.clear()
        return records


def _fail(future: asyncio.Future, exc: BaseException) -> None:
    if future.done():
        return
    if isinstance(exc, asyncio.CancelledError):
        future.cancel()
        return
    future.set_exception(exc)
    # Mark retrieved; waiters still receive it
    future.exception()
