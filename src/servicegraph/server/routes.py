"""Introspection route handlers."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..container import Container
from ..interfaces import describe_key
from .dependencies import get_container
from .models import (
    HealthResponse,
    MetricsResponse,
    ServiceListResponse,
    ServiceResponse,
    ValidationResponse,
)

router = APIRouter(prefix="/v1", tags=["container"])


@router.get("/health", response_model=HealthResponse)
async def health(container: Container = Depends(get_container)) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="disposed" if container.is_disposed else "ok",
        service_count=len(container),
        active_scopes=len(container.active_scopes),
        disposed=container.is_disposed,
    )


@router.get("/services", response_model=ServiceListResponse)
async def list_services(
    tag: Optional[str] = None,
    container: Container = Depends(get_container),
) -> ServiceListResponse:
    """List registered services, optionally filtered by tag."""
    entries = list(container.get_all_services())
    if tag is not None:
        entries = [e for e in entries if tag in e.metadata.tags]
    services = [ServiceResponse.from_entry(e) for e in entries]
    return ServiceListResponse(services=services, count=len(services))


@router.get("/services/{name}", response_model=ServiceResponse)
async def get_service(
    name: str,
    container: Container = Depends(get_container),
) -> ServiceResponse:
    """Get one service by its token's display name."""
    for entry in container.get_all_services():
        if describe_key(entry.token) == name:
            return ServiceResponse.from_entry(entry)
    raise HTTPException(status_code=404, detail=f"Service {name} not registered")


@router.get("/metrics", response_model=MetricsResponse)
async def metrics(container: Container = Depends(get_container)) -> MetricsResponse:
    """Container counters."""
    return MetricsResponse(**container.get_metrics().to_dict())


@router.get("/validate", response_model=ValidationResponse)
async def validate(container: Container = Depends(get_container)) -> ValidationResponse:
    """Static validation of the registered graph. Constructs nothing."""
    result = container.validate()
    cycles = [[describe_key(t) for t in cycle] for cycle in container.find_cycles()]
    return ValidationResponse(valid=result.valid, errors=result.errors, cycles=cycles)
