"""Tests for the HTTP server."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from servicegraph import Container, ContainerConfig, Token
from servicegraph.config import ServerConfig
from servicegraph.server import Inject, create_app, get_scope_id
from servicegraph.server.routes import router


@pytest.fixture
def wired(tokens, service_classes):
    """Container with a small graph covering every lifetime."""
    container = Container(ContainerConfig(lifecycle_logging=False))
    container.register_singleton(
        tokens.LOGGER, service_classes["Logger"], tags=["core"], description="Application logger"
    )
    container.register_singleton(tokens.REPO, service_classes["Repo"], dependencies=[tokens.LOGGER], tags=["data"])
    container.register_scoped(tokens.CONN, service_classes["Conn"], dispose_hook="dispose")
    return container


@pytest.fixture
def client(wired):
    """Introspection client without per-request scopes."""
    app = create_app(wired, ServerConfig(request_scopes=False))
    return TestClient(app)


class TestHealthEndpoint:
    """Tests for /v1/health endpoint."""

    def test_health_returns_ok(self, client):
        """Health endpoint should return status ok."""
        response = client.get("/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service_count"] == 3
        assert data["active_scopes"] == 0
        assert data["disposed"] is False

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "servicegraph"

    def test_missing_container(self):
        """Routes answer 503 when no container is attached."""
        app = FastAPI()
        app.include_router(router)

        response = TestClient(app).get("/v1/health")

        assert response.status_code == 503


class TestServicesEndpoint:
    """Tests for /v1/services endpoints."""

    def test_list_services(self, client):
        """All services are listed in registration order."""
        response = client.get("/v1/services")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 3
        assert [s["token"] for s in data["services"]] == ["Logger", "Repo", "Conn"]
        repo = data["services"][1]
        assert repo["lifetime"] == "singleton"
        assert repo["strategy"] == "constructor"
        assert repo["dependencies"] == ["Logger"]
        assert repo["tags"] == ["data"]

    def test_filter_by_tag(self, client):
        response = client.get("/v1/services", params={"tag": "core"})

        data = response.json()
        assert data["count"] == 1
        assert data["services"][0]["token"] == "Logger"
        assert data["services"][0]["description"] == "Application logger"

    def test_get_service(self, client):
        response = client.get("/v1/services/Conn")

        assert response.status_code == 200
        data = response.json()
        assert data["lifetime"] == "scoped"
        assert data["dispose_hook"] == "dispose"
        assert data["lifecycle"] == "created"

    def test_get_unknown_service(self, client):
        response = client.get("/v1/services/Nope")

        assert response.status_code == 404


class TestMetricsAndValidation:
    """Tests for /v1/metrics and /v1/validate."""

    def test_metrics(self, client):
        response = client.get("/v1/metrics")

        assert response.status_code == 200
        data = response.json()
        assert data["total_registrations"] == 3
        assert data["total_resolutions"] == 0
        assert data["error_count"] == 0

    def test_validate_ok(self, client):
        data = client.get("/v1/validate").json()

        assert data == {"valid": True, "errors": [], "cycles": []}

    def test_validate_reports_problems(self, wired, service_classes):
        """Missing dependencies and cycles are both reported."""
        a, b = Token("A"), Token("B")
        wired.register_singleton(a, service_classes["X"], dependencies=[b])
        wired.register_singleton(b, service_classes["Y"], dependencies=[a, Token("Missing")])
        client = TestClient(create_app(wired))

        data = client.get("/v1/validate").json()

        assert data["valid"] is False
        assert data["errors"] == ["Service B depends on unregistered service Missing"]
        assert data["cycles"] == [["A", "B", "A"]]


class TestRequestScopes:
    """Tests for per-request scopes and Inject."""

    def test_scoped_service_per_request(self, wired, tokens):
        """Each request gets its own scoped instance, disposed afterwards."""
        app = create_app(wired)
        seen = []

        @app.get("/conn")
        async def conn_route(conn=Inject(tokens.CONN), repo=Inject(tokens.REPO)):
            seen.append((conn, repo))
            return {"disposed": conn.disposed}

        client = TestClient(app)
        first = client.get("/conn")
        second = client.get("/conn")

        assert first.json() == {"disposed": False}
        assert second.status_code == 200
        (conn_1, repo_1), (conn_2, repo_2) = seen
        assert conn_1 is not conn_2
        assert repo_1 is repo_2
        assert conn_1.disposed and conn_2.disposed
        assert wired.active_scopes == []

    def test_scope_id_exposed(self, wired):
        """Handlers see the id of the scope opened for their request."""
        app = create_app(wired)

        @app.get("/scope")
        async def scope_route(scope_id=Depends(get_scope_id)):
            return {"scope_id": scope_id}

        client = TestClient(app)

        assert client.get("/scope").json()["scope_id"].startswith("request-")
        assert client.get("/v1/health").json()["active_scopes"] == 1

    def test_no_request_scopes(self, wired, tokens):
        """Without request scopes, scoped services cannot be injected."""
        app = create_app(wired, ServerConfig(request_scopes=False))

        @app.get("/conn")
        async def conn_route(conn=Inject(tokens.CONN)):
            return {}

        client = TestClient(app, raise_server_exceptions=False)

        assert client.get("/conn").status_code == 500


class TestLifespan:
    """Tests for startup and shutdown."""

    def test_dispose_on_shutdown(self, wired, tokens):
        app = create_app(wired)

        @app.get("/repo")
        async def repo_route(repo=Inject(tokens.REPO)):
            return {}

        with TestClient(app) as client:
            client.get("/repo")

        assert wired.is_disposed

    def test_keep_container_on_shutdown(self, wired):
        app = create_app(wired, ServerConfig(dispose_on_shutdown=False))

        with TestClient(app) as client:
            client.get("/v1/health")

        assert not wired.is_disposed

    def test_disposed_container_returns_503(self, wired, tokens):
        """Injection into a disposed container answers 503."""
        app = create_app(wired, ServerConfig(request_scopes=False))

        @app.get("/repo")
        async def repo_route(repo=Inject(tokens.REPO)):
            return {}

        client = TestClient(app)
        with TestClient(app):
            pass

        response = client.get("/repo")

        assert response.status_code == 503
        assert client.get("/v1/health").json()["status"] == "disposed"

    def test_health_after_dispose_with_request_scopes(self, wired):
        """Requests after shutdown skip the request scope and still answer."""
        app = create_app(wired)
        with TestClient(app):
            pass

        response = TestClient(app).get("/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "disposed"
