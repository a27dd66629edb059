"""Class decorator for registering services next to their definition."""

from typing import Optional, Sequence

from .container import Container
from .interfaces import ServiceKey, ServiceLifetime


def injectable(
    container: Container,
    token: ServiceKey,
    *,
    lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
    dependencies: Sequence[ServiceKey] = (),
    init_hook: Optional[str] = None,
    dispose_hook: Optional[str] = None,
    tags: Sequence[str] = (),
    description: Optional[str] = None,
):
    """Register the decorated class on ``container`` under ``token``.

    A thin wrapper over ``Container.register``; the class is returned
    unchanged.

    Usage:
        @injectable(container, REPO, dependencies=[LOGGER])
        class Repo:
            def __init__(self, logger): ...
    """
    def decorator(cls):
        container.register(
            token,
            cls,
            lifetime,
            dependencies=dependencies,
            init_hook=init_hook,
            dispose_hook=dispose_hook,
            tags=tags,
            description=description or (cls.__doc__ or "").strip().split("\n")[0] or None,
        )
        return cls
    return decorator
