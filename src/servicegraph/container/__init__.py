"""Dependency Injection Container.

Registration, lifetime-aware resolution, scopes and introspection.
"""

from .container import Container
from .scopes import ScopeDisposer

__all__ = ["Container", "ScopeDisposer"]
