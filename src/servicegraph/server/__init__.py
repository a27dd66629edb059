"""servicegraph HTTP server.

FastAPI application exposing container introspection, plus the
request-scope middleware and ``Inject`` dependency for application routes.
"""

from .app import create_app, run_server
from .dependencies import Inject, get_container, get_scope_id

__all__ = ["create_app", "run_server", "Inject", "get_container", "get_scope_id"]
