"""servicegraph: an inversion-of-control container for asyncio applications.

Key design principles:

1. **Explicit Registration**: Services are registered through the
   ``register_*`` family during a setup phase. No package scanning.

2. **Lifetimes**: SINGLETON (one per container), TRANSIENT (one per resolve)
   and SCOPED (one per named scope).

3. **Deterministic Teardown**: Scopes and singletons are disposed in reverse
   creation order; every dispose hook runs even if another one fails.

4. **No Globals**: Containers are ordinary objects passed to whoever needs
   them.

Usage:
    from servicegraph import Container, Token

    LOGGER = Token("Logger")
    REPO = Token("Repo")

    container = Container()
    container.register_singleton(LOGGER, Logger)
    container.register_singleton(REPO, Repo, dependencies=[LOGGER])

    repo = await container.resolve(REPO)
"""

from .config import ContainerConfig, ServerConfig, ServiceGraphConfig
from .container import Container, ScopeDisposer
from .decorators import injectable
from .errors import (
    CircularDependency,
    ConstructionFailed,
    ContainerDisposed,
    ContainerError,
    DisposalError,
    DuplicateScope,
    NotRegistered,
    ResolutionDepthExceeded,
    ScopeRequired,
    UnknownScope,
)
from .interfaces import (
    ConstructorStrategy,
    ContainerMetrics,
    FactoryStrategy,
    InstanceStrategy,
    ServiceEntry,
    ServiceLifecycle,
    ServiceLifetime,
    ServiceMetadata,
    Token,
    ValidationResult,
)

__version__ = "0.1.0"

__all__ = [
    "Container",
    "ScopeDisposer",
    "Token",
    "ServiceLifetime",
    "ServiceLifecycle",
    "ConstructorStrategy",
    "FactoryStrategy",
    "InstanceStrategy",
    "ServiceMetadata",
    "ServiceEntry",
    "ContainerMetrics",
    "ValidationResult",
    "ContainerConfig",
    "ServerConfig",
    "ServiceGraphConfig",
    "injectable",
    "ContainerError",
    "NotRegistered",
    "CircularDependency",
    "ResolutionDepthExceeded",
    "ScopeRequired",
    "UnknownScope",
    "DuplicateScope",
    "ContainerDisposed",
    "ConstructionFailed",
    "DisposalError",
]
