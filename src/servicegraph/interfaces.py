"""Core types for the servicegraph container.

These types describe what the container stores and hands back to callers:
tokens, lifetimes, construction strategies and the metadata snapshots used
for introspection.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Hashable, Optional, Union


class Token:
    """Opaque identity for a requested capability.

    Equality is identity-based: two tokens created with the same name are
    different keys. The name only exists for logs and error messages.
    """

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Token({self.name!r})"

    def __str__(self) -> str:
        return self.name


# Anything hashable can key the registry; Token is the recommended choice.
ServiceKey = Hashable


class ServiceLifetime(Enum):
    """How long a resolved instance lives."""
    SINGLETON = "singleton"  # One instance for the container's lifetime
    TRANSIENT = "transient"  # New instance per resolve
    SCOPED = "scoped"        # One instance per named scope


class ServiceLifecycle(Enum):
    """Lifecycle phase last reached by a registered service."""
    CREATING = "creating"
    CREATED = "created"
    INITIALIZING = "initializing"
    READY = "ready"
    DISPOSING = "disposing"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class ConstructorStrategy:
    """Build instances by calling ``cls`` with resolved dependencies."""
    cls: Callable[..., Any]


@dataclass(frozen=True)
class FactoryStrategy:
    """Build instances by calling a factory.

    The factory is called with no arguments unless ``pass_container`` is set,
    in which case it receives the container. It may return an awaitable.
    """
    factory: Callable[..., Any]
    pass_container: bool = False


@dataclass(frozen=True)
class InstanceStrategy:
    """Hand back a pre-built value unchanged."""
    value: Any

    def __eq__(self, other: object) -> bool:
        # Pre-built values compare by identity, not by their own __eq__
        return isinstance(other, InstanceStrategy) and other.value is self.value

    def __hash__(self) -> int:
        return id(self.value)


Strategy = Union[ConstructorStrategy, FactoryStrategy, InstanceStrategy]


def describe_key(key: ServiceKey) -> str:
    """Human-readable name for a service key."""
    if isinstance(key, Token):
        return key.name
    if isinstance(key, type):
        return key.__qualname__
    if isinstance(key, str):
        return key
    return repr(key)


@dataclass(frozen=True)
class ServiceMetadata:
    """Read-only snapshot of a registered service.

    Attributes:
        lifetime: Caching policy for resolved instances
        strategy_kind: "constructor", "factory" or "instance"
        dependencies: Tokens resolved before construction, in order
        init_hook: Method called on new instances before they are cached
        dispose_hook: Method called on instances at teardown
        tags: Labels used for grouping
        description: Free text, no runtime effect
        lifecycle: Last lifecycle phase reached
        registered_at: When the descriptor was stored
    """
    lifetime: ServiceLifetime
    strategy_kind: str
    dependencies: tuple = ()
    init_hook: Optional[str] = None
    dispose_hook: Optional[str] = None
    tags: frozenset = frozenset()
    description: Optional[str] = None
    lifecycle: ServiceLifecycle = ServiceLifecycle.CREATED
    registered_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class ServiceEntry:
    """A token paired with its metadata snapshot."""
    token: ServiceKey
    metadata: ServiceMetadata

    def __repr__(self) -> str:
        return f"ServiceEntry(token={describe_key(self.token)}, lifetime={self.metadata.lifetime.value})"


@dataclass(frozen=True)
class ContainerMetrics:
    """Point-in-time copy of the container counters."""
    total_registrations: int = 0
    total_resolutions: int = 0
    error_count: int = 0
    circular_dependencies_detected: int = 0
    avg_resolution_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_registrations": self.total_registrations,
            "total_resolutions": self.total_resolutions,
            "error_count": self.error_count,
            "circular_dependencies_detected": self.circular_dependencies_detected,
            "avg_resolution_time_ms": self.avg_resolution_time_ms,
        }


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a static pass over the registered descriptors."""
    valid: bool
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid
