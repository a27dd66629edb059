"""Pydantic models for the introspection HTTP API."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ..interfaces import ServiceEntry, describe_key


class Lifetime(str, Enum):
    """Service lifetimes as exposed over HTTP."""
    SINGLETON = "singleton"
    TRANSIENT = "transient"
    SCOPED = "scoped"


# =============================================================================
# Response Models
# =============================================================================

class ServiceResponse(BaseModel):
    """One registered service."""
    token: str = Field(..., description="Display name of the token")
    lifetime: Lifetime
    strategy: str = Field(..., description="constructor, factory or instance")
    dependencies: list[str] = Field(default_factory=list)
    init_hook: Optional[str] = None
    dispose_hook: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    description: Optional[str] = None
    lifecycle: str = Field(..., description="Last lifecycle phase reached")
    registered_at: datetime

    @classmethod
    def from_entry(cls, entry: ServiceEntry) -> "ServiceResponse":
        meta = entry.metadata
        return cls(
            token=describe_key(entry.token),
            lifetime=Lifetime(meta.lifetime.value),
            strategy=meta.strategy_kind,
            dependencies=[describe_key(d) for d in meta.dependencies],
            init_hook=meta.init_hook,
            dispose_hook=meta.dispose_hook,
            tags=sorted(meta.tags),
            description=meta.description,
            lifecycle=meta.lifecycle.value,
            registered_at=meta.registered_at,
        )


class ServiceListResponse(BaseModel):
    """Registered services in registration order."""
    services: list[ServiceResponse]
    count: int


class MetricsResponse(BaseModel):
    """Container counters."""
    total_registrations: int
    total_resolutions: int
    error_count: int
    circular_dependencies_detected: int
    avg_resolution_time_ms: float


class ValidationResponse(BaseModel):
    """Static validation result."""
    valid: bool
    errors: list[str] = Field(default_factory=list)
    cycles: list[list[str]] = Field(
        default_factory=list,
        description="Declared dependency cycles, each closed on its first token",
    )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service_count: int
    active_scopes: int
    disposed: bool
