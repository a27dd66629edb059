"""Exceptions raised by the servicegraph container."""

from typing import Optional, Sequence

from .interfaces import ServiceKey, describe_key


class ContainerError(Exception):
    """Base class for every error the container raises."""


class NotRegistered(ContainerError, KeyError):
    """Resolve was called for a token with no descriptor."""

    def __init__(self, token: ServiceKey):
        self.token = token
        super().__init__(f"Service not registered: {describe_key(token)}")

    def __str__(self) -> str:
        # KeyError would otherwise quote the message
        return self.args[0]


class CircularDependency(ContainerError):
    """A token was requested while it was already being constructed.

    Attributes:
        chain: Tokens from the first occurrence of the repeated token to the
            repeat, inclusive.
    """

    def __init__(self, chain: Sequence[ServiceKey]):
        self.chain = list(chain)
        path = " -> ".join(describe_key(t) for t in self.chain)
        super().__init__(f"Circular dependency detected: {path}")


class ResolutionDepthExceeded(ContainerError):
    """The resolution stack grew past the configured maximum depth."""

    def __init__(self, max_depth: int, chain: Sequence[ServiceKey]):
        self.max_depth = max_depth
        self.chain = list(chain)
        super().__init__(f"Maximum resolution depth exceeded: {max_depth}")


class ScopeRequired(ContainerError):
    """A SCOPED service was resolved without a scope id."""

    def __init__(self, token: ServiceKey):
        self.token = token
        super().__init__(f"Service {describe_key(token)} is scoped and requires a scope id")


class UnknownScope(ContainerError):
    """Resolve was called with a scope id that is not active."""

    def __init__(self, scope_id: str):
        self.scope_id = scope_id
        super().__init__(f"Scope not active: {scope_id}")


class DuplicateScope(ContainerError):
    """A scope was created under a name that is already active."""

    def __init__(self, scope_id: str):
        self.scope_id = scope_id
        super().__init__(f"Scope already active: {scope_id}")


class ContainerDisposed(ContainerError):
    """The container was used after ``dispose()``."""

    def __init__(self, operation: str = "resolve"):
        self.operation = operation
        super().__init__(f"Container has been disposed (attempted {operation})")


class ConstructionFailed(ContainerError):
    """A strategy or init hook raised while building an instance.

    The message is the original error's message; the original is kept on
    ``original`` and chained as ``__cause__``.
    """

    def __init__(self, token: ServiceKey, original: BaseException):
        self.token = token
        self.original = original
        super().__init__(str(original))


class DisposalError(ContainerError):
    """One or more dispose hooks raised during a disposal sweep.

    Attributes:
        errors: (token, exception) pairs in the order they occurred.
    """

    def __init__(self, errors: Sequence[tuple], scope_id: Optional[str] = None):
        self.errors = list(errors)
        self.scope_id = scope_id
        where = f"scope {scope_id}" if scope_id else "container"
        details = "; ".join(f"{describe_key(token)}: {exc}" for token, exc in self.errors)
        super().__init__(f"{len(self.errors)} dispose hook(s) failed in {where}: {details}")
