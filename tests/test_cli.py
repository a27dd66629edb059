"""Tests for the servicegraph CLI (validate, inspect, serve commands)."""

import json
from unittest.mock import patch

import pytest

from servicegraph.cli import main


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at an empty config so local files never leak in."""
    monkeypatch.setenv("SERVICEGRAPH_CONFIG", str(tmp_path / "servicegraph.yaml"))
    return tmp_path


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestValidateCommand:
    """Tests for `servicegraph validate`."""

    def test_valid_graph(self, capsys):
        """A complete graph exits 0."""
        assert run(["validate", "sample_wiring:bootstrap"]) == 0

        out = capsys.readouterr().out
        assert "dependency graph is valid" in out
        assert "5 service(s)" in out

    def test_missing_dependency(self, capsys):
        """Unregistered dependencies exit 1 and are printed."""
        assert run(["validate", "sample_wiring:broken_bootstrap"]) == 1

        out = capsys.readouterr().out
        assert "Service Repo depends on unregistered service Missing" in out

    def test_cycle(self, capsys):
        """Cycles exit 1 and are printed."""
        assert run(["validate", "sample_wiring:cyclic_bootstrap"]) == 1

        out = capsys.readouterr().out
        assert "A -> B -> A" in out

    def test_bad_target(self, capsys):
        """An unloadable target exits 1 with a message on stderr."""
        assert run(["validate", "sample_wiring:nope"]) == 1

        assert "Could not load sample_wiring:nope" in capsys.readouterr().err

    def test_malformed_target(self, capsys):
        assert run(["validate", "sample_wiring"]) == 1

        assert "Could not load" in capsys.readouterr().err


class TestInspectCommand:
    """Tests for `servicegraph inspect`."""

    def test_text_output(self, capsys):
        assert run(["inspect", "sample_wiring:bootstrap"]) == 0

        out = capsys.readouterr().out
        assert "Logger (singleton, constructor) [core]" in out
        assert "Repo (singleton, constructor) <- Logger [data]" in out
        assert "Container (singleton, instance) [builtin]" in out

    def test_json_output(self, capsys):
        assert run(["inspect", "sample_wiring:bootstrap", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        services = {s["token"]: s for s in data["services"]}
        assert services["Repo"]["dependencies"] == ["Logger"]
        assert services["Logger"]["description"] == "Application logger"
        assert data["cycles"] == []

    def test_json_lists_cycles(self, capsys):
        assert run(["inspect", "sample_wiring:cyclic_bootstrap", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["cycles"] == [["A", "B", "A"]]


class TestServeCommand:
    """Tests for `servicegraph serve`."""

    def test_serve_passes_overrides(self):
        """Host and port flags reach run_server."""
        with patch("servicegraph.server.run_server") as run_server:
            assert run(["serve", "sample_wiring:bootstrap", "--host", "0.0.0.0", "--port", "9000"]) == 0

        run_server.assert_called_once()
        kwargs = run_server.call_args.kwargs
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 9000

    def test_serve_uses_config_file(self, cli_env):
        config = cli_env / "custom.yaml"
        config.write_text("server:\n  port: 9100\nlog_level: warning\n")

        with patch("servicegraph.server.run_server") as run_server:
            assert run(["serve", "sample_wiring:bootstrap", "-c", str(config)]) == 0

        assert run_server.call_args.kwargs["config"].port == 9100
        assert run_server.call_args.kwargs["log_level"] == "warning"

    def test_serve_rejects_bad_config(self, cli_env, capsys):
        config = cli_env / "bad.yaml"
        config.write_text("log_level: loud\n")

        with patch("servicegraph.server.run_server") as run_server:
            assert run(["serve", "sample_wiring:bootstrap", "-c", str(config)]) == 1

        run_server.assert_not_called()
        assert "log_level" in capsys.readouterr().err


class TestMain:
    """Tests for argument handling."""

    def test_no_command_prints_help(self, capsys):
        assert run([]) == 1

        assert "usage" in capsys.readouterr().out.lower()
