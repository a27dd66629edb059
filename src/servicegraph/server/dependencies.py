"""FastAPI dependencies bridging request handlers to the container."""

from typing import Any, Optional

from fastapi import Depends, HTTPException, Request

from ..container import Container
from ..errors import ContainerDisposed
from ..interfaces import ServiceKey


def get_container(request: Request) -> Container:
    """Container attached to the application by ``create_app``."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(status_code=503, detail="Container not initialized")
    return container


def get_scope_id(request: Request) -> Optional[str]:
    """Scope opened for this request by the request-scope middleware, if any."""
    return getattr(request.state, "scope_id", None)


def Inject(token: ServiceKey) -> Any:
    """Resolve ``token`` for a route parameter.

    SCOPED services resolve inside the current request's scope.

    Usage:
        @router.get("/items")
        async def items(repo: Repo = Inject(REPO)):
            ...
    """
    async def _resolve(
        container: Container = Depends(get_container),
        scope_id: Optional[str] = Depends(get_scope_id),
    ) -> Any:
        try:
            return await container.resolve(token, scope_id)
        except ContainerDisposed:
            raise HTTPException(status_code=503, detail="Container has been disposed")

    return Depends(_resolve)
