"""Named disposal scopes and the teardown sweep shared with the container."""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from ..errors import DisposalError, DuplicateScope, UnknownScope
from ..interfaces import ServiceKey, ServiceLifecycle, describe_key
from .descriptors import ServiceDescriptor

logger = logging.getLogger(__name__)

LifecycleCallback = Callable[[ServiceKey, ServiceDescriptor, ServiceLifecycle], None]


@dataclass
class DisposalRecord:
    """An instance the container created and must tear down."""
    token: ServiceKey
    instance: Any
    descriptor: ServiceDescriptor


@dataclass
class InFlight:
    """A construction another call can wait on.

    ``owner`` is the resolution stack of the call doing the construction.
    """
    future: asyncio.Future
    owner: list


async def settle_in_flight(in_flight: dict) -> None:
    """Wait until ``in_flight`` is empty, whatever the constructions' outcome."""
    while in_flight:
        pending = [asyncio.shield(entry.future) for entry in list(in_flight.values())]
        await asyncio.gather(*pending, return_exceptions=True)


@dataclass
class Scope:
    """Ownership boundary for SCOPED instances.

    Attributes:
        name: Scope id passed to ``resolve``
        instances: Cached scoped instances keyed by token
        disposal_list: Scoped instances in creation order
        in_flight: Constructions currently awaiting completion, as InFlight
    """
    name: str
    instances: dict = field(default_factory=dict)
    disposal_list: list[DisposalRecord] = field(default_factory=list)
    in_flight: dict = field(default_factory=dict)

    def record(self, token: ServiceKey, instance: Any, descriptor: ServiceDescriptor) -> None:
        self.instances[token] = instance
        self.disposal_list.append(DisposalRecord(token, instance, descriptor))


async def dispose_records(
    records: list[DisposalRecord],
    on_lifecycle: Optional[LifecycleCallback] = None,
) -> list[tuple]:
    """Run dispose hooks over ``records`` in reverse order.

    A failing hook does not stop the sweep.

    Returns:
        (token, exception) pairs for every hook that raised.
    """
    errors = []
    for record in reversed(records):
        hook_name = record.descriptor.dispose_hook
        if not hook_name:
            continue
        if on_lifecycle:
            on_lifecycle(record.token, record.descriptor, ServiceLifecycle.DISPOSING)
        hook = getattr(record.instance, hook_name, None)
        if not callable(hook):
            logger.debug(f"{describe_key(record.token)} has no callable {hook_name}(), skipping")
            continue
        try:
            result = hook()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.warning(f"Dispose hook failed for {describe_key(record.token)}: {exc}")
            errors.append((record.token, exc))
            continue
        if on_lifecycle:
            on_lifecycle(record.token, record.descriptor, ServiceLifecycle.DISPOSED)
    return errors


class ScopeManager:
    """Creates, looks up and tears down named scopes.

    Creating a scope under a name that is still active raises
    ``DuplicateScope``; once disposed, the name can be used again.
    """

    def __init__(self, on_lifecycle: Optional[LifecycleCallback] = None):
        self._scopes: dict[str, Scope] = {}
        self._on_lifecycle = on_lifecycle

    def create(self, name: str) -> Scope:
        if name in self._scopes:
            raise DuplicateScope(name)
        scope = Scope(name=name)
        self._scopes[name] = scope
        logger.debug(f"Scope created: {name}")
        return scope

    def get(self, name: str) -> Scope:
        scope = self._scopes.get(name)
        if scope is None:
            raise UnknownScope(name)
        return scope

    @property
    def names(self) -> list[str]:
        """Active scope names in creation order."""
        return list(self._scopes)

    async def dispose(self, name: str) -> None:
        """Tear down ``name``; a no-op when it is not active.

        Constructions still in flight in the scope finish first, so their
        instances are disposed with the rest.

        Raises:
            DisposalError: After the full sweep, if any hook raised.
        """
        scope = self._scopes.get(name)
        if scope is None:
            return
        await settle_in_flight(scope.in_flight)
        if self._scopes.get(name) is not scope:
            # Disposed by a concurrent call while settling
            return
        del self._scopes[name]
        records = list(scope.disposal_list)
        errors = await dispose_records(records, self._on_lifecycle)
        scope.instances.clear()
        scope.disposal_list.clear()
        logger.debug(f"Scope disposed: {name} ({len(records)} instance(s))")
        if errors:
            raise DisposalError(errors, scope_id=name)

    async def dispose_all(self) -> list[tuple]:
        """Tear down every active scope in creation order.

        Returns:
            Collected (token, exception) pairs across all scopes.
        """
        errors = []
        for name in self.names:
            try:
                await self.dispose(name)
            except DisposalError as exc:
                errors.extend(exc.errors)
        return errors


class ScopeDisposer:
    """Handle returned by ``create_scope``.

    Awaiting a call tears the scope down; later calls do nothing. The handle
    also works as an async context manager::

        async with container.create_scope("req-1") as scope_id:
            conn = await container.resolve(CONN, scope_id)
    """

    def __init__(self, name: str, dispose: Callable[[str], Awaitable[None]]):
        self.name = name
        self._dispose = dispose
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def __call__(self) -> None:
        if self._disposed:
            return
        # Mark first so a concurrent second call is a no-op
        self._disposed = True
        await self._dispose(self.name)

    async def __aenter__(self) -> str:
        return self.name

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self()

    def __repr__(self) -> str:
        return f"ScopeDisposer(name={self.name!r}, disposed={self._disposed})"

