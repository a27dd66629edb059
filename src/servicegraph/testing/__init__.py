"""Testing utilities for servicegraph containers."""

from .mocks import LifecycleLog, MockFactory, TrackedService, make_service_class

__all__ = [
    "LifecycleLog",
    "MockFactory",
    "TrackedService",
    "make_service_class",
]
