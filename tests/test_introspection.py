"""Tests for validation, tags, graph queries and metrics."""

import pytest

from servicegraph import ContainerMetrics, NotRegistered, Token
from servicegraph.container import Container
from servicegraph.config import ContainerConfig


class TestValidate:
    """Tests for static dependency validation."""

    def test_valid_graph(self, container, tokens, service_classes):
        """A fully registered graph validates."""
        container.register_singleton(tokens.LOGGER, service_classes["Logger"])
        container.register_singleton(tokens.REPO, service_classes["Repo"], dependencies=[tokens.LOGGER])

        result = container.validate()

        assert result.valid
        assert result.errors == []
        assert bool(result)

    def test_missing_dependency_reported(self, container, log, service_classes):
        """Validate names the dependent and the missing token without constructing."""
        c, u = Token("C"), Token("U")
        container.register_singleton(c, service_classes["X"], dependencies=[u], init_hook="initialize")

        result = container.validate()

        assert not result.valid
        assert result.errors == ["Service C depends on unregistered service U"]
        assert len(log) == 0
        assert container.get_metrics().total_resolutions == 0

    def test_every_missing_edge_reported(self, container, service_classes):
        """Each unregistered dependency produces its own message."""
        a, b = Token("A"), Token("B")
        m1, m2 = Token("M1"), Token("M2")
        container.register_singleton(a, service_classes["X"], dependencies=[m1, m2])
        container.register_singleton(b, service_classes["Y"], dependencies=[m1])

        result = container.validate()

        assert len(result.errors) == 3
        assert any("A" in e and "M2" in e for e in result.errors)

    def test_cycles_do_not_fail_validate(self, container, service_classes):
        """validate only checks registration; find_cycles reports cycles."""
        a, b = Token("A"), Token("B")
        container.register_singleton(a, service_classes["X"], dependencies=[b])
        container.register_singleton(b, service_classes["Y"], dependencies=[a])

        assert container.validate().valid
        assert container.find_cycles() == [[a, b, a]]


class TestFindCycles:
    """Tests for static cycle search."""

    def test_acyclic(self, container, tokens, service_classes):
        """An acyclic graph has no cycles."""
        container.register_singleton(tokens.LOGGER, service_classes["Logger"])
        container.register_singleton(tokens.REPO, service_classes["Repo"], dependencies=[tokens.LOGGER])

        assert container.find_cycles() == []

    def test_cycle_starts_at_first_registered(self, container, service_classes):
        """The reported cycle begins with its earliest-registered member."""
        a, b, c = Token("A"), Token("B"), Token("C")
        container.register_singleton(a, service_classes["X"], dependencies=[b])
        container.register_singleton(b, service_classes["Y"], dependencies=[c])
        container.register_singleton(c, service_classes["Z"], dependencies=[a])

        assert container.find_cycles() == [[a, b, c, a]]

    def test_self_cycle(self, container, service_classes):
        """A self-dependency is a cycle of one."""
        a = Token("A")
        container.register_singleton(a, service_classes["X"], dependencies=[a])

        assert container.find_cycles() == [[a, a]]

    def test_missing_dependencies_ignored(self, container, service_classes):
        """Unregistered edges are skipped by the cycle search."""
        a = Token("A")
        container.register_singleton(a, service_classes["X"], dependencies=[Token("Missing")])

        assert container.find_cycles() == []


class TestGraphAndTags:
    """Tests for graph and tag queries."""

    def test_dependency_graph(self, container, tokens, service_classes):
        """The graph maps every token to its declared dependencies."""
        container.register_singleton(tokens.LOGGER, service_classes["Logger"])
        container.register_singleton(tokens.REPO, service_classes["Repo"], dependencies=[tokens.LOGGER])

        assert container.dependency_graph() == {
            tokens.LOGGER: (),
            tokens.REPO: (tokens.LOGGER,),
        }

    def test_services_by_tag(self, container, tokens, service_classes):
        """Only tokens carrying the tag are returned, in registration order."""
        container.register_singleton(tokens.LOGGER, service_classes["Logger"], tags=["core"])
        container.register_singleton(tokens.REPO, service_classes["Repo"], tags=["data"])
        container.register_singleton(tokens.CACHE, service_classes["Cache"], tags=["core", "data"])

        assert container.get_services_by_tag("core") == [tokens.LOGGER, tokens.CACHE]
        assert container.get_services_by_tag("data") == [tokens.REPO, tokens.CACHE]
        assert container.get_services_by_tag("missing") == []


class TestMetrics:
    """Tests for container counters."""

    def test_fresh_container(self):
        """A new container starts at zero."""
        metrics = Container().get_metrics()

        assert metrics == ContainerMetrics()

    async def test_resolutions_count_top_level_calls(self, container, tokens, service_classes):
        """Dependencies built during a call do not count as separate resolutions."""
        container.register_singleton(tokens.LOGGER, service_classes["Logger"])
        container.register_singleton(tokens.REPO, service_classes["Repo"], dependencies=[tokens.LOGGER])

        await container.resolve(tokens.REPO)
        assert container.get_metrics().total_resolutions == 1

        await container.resolve(tokens.REPO)

        metrics = container.get_metrics()
        assert metrics.total_registrations == 2
        assert metrics.total_resolutions == 2
        assert metrics.error_count == 0

    async def test_failed_call_is_not_a_resolution(self, container, tokens, service_classes):
        """A call whose dependency fails counts one error and no resolution."""
        container.register_singleton(tokens.REPO, service_classes["Repo"], dependencies=[tokens.LOGGER])

        with pytest.raises(NotRegistered):
            await container.resolve(tokens.REPO)

        metrics = container.get_metrics()
        assert metrics.total_resolutions == 0
        assert metrics.error_count == 1

    async def test_timings_tracked(self, container, tokens, service_classes):
        """The average resolve time is recorded when timings are on."""
        container.register_transient(tokens.LOGGER, service_classes["Logger"])

        await container.resolve(tokens.LOGGER)

        assert container.get_metrics().avg_resolution_time_ms >= 0.0

    async def test_timings_disabled(self, tokens, service_classes):
        """With track_timings off the average stays at zero."""
        container = Container(ContainerConfig(track_timings=False))
        container.register_transient(tokens.LOGGER, service_classes["Logger"])

        await container.resolve(tokens.LOGGER)

        assert container.get_metrics().avg_resolution_time_ms == 0.0

    async def test_snapshot_is_detached(self, container, tokens, service_classes):
        """Snapshots do not change after later activity."""
        container.register_transient(tokens.LOGGER, service_classes["Logger"])
        before = container.get_metrics()

        await container.resolve(tokens.LOGGER)

        assert before.total_resolutions == 0
        assert container.get_metrics().total_resolutions == 1

    def test_to_dict(self):
        """Metrics serialize to a flat dict."""
        data = ContainerMetrics(total_registrations=2).to_dict()

        assert data["total_registrations"] == 2
        assert set(data) == {
            "total_registrations",
            "total_resolutions",
            "error_count",
            "circular_dependencies_detected",
            "avg_resolution_time_ms",
        }
