"""Container and server configuration."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

_LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass
class ContainerConfig:
    """Resolver behaviour.

    Attributes:
        detect_cycles: Fail fast with CircularDependency when a token is
            requested while it is being constructed
        max_resolution_depth: Longest allowed chain of nested resolutions
        lifecycle_logging: Emit a DEBUG record per lifecycle transition
        track_timings: Keep the average resolve duration in the metrics
    """
    detect_cycles: bool = True
    max_resolution_depth: int = 20
    lifecycle_logging: bool = True
    track_timings: bool = True

    def __post_init__(self):
        if self.max_resolution_depth < 1:
            raise ValueError("max_resolution_depth must be >= 1")


@dataclass
class ServerConfig:
    """Introspection HTTP server configuration."""
    host: str = "127.0.0.1"
    port: int = 18800
    request_scopes: bool = True  # Open a container scope per request
    dispose_on_shutdown: bool = True

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")


@dataclass
class ServiceGraphConfig:
    """Full configuration."""
    container: ContainerConfig = field(default_factory=ContainerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "info"

    @classmethod
    def from_file(cls, path: str | Path) -> "ServiceGraphConfig":
        """Load configuration from a YAML file; defaults when it is missing."""
        path = Path(path).expanduser()
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceGraphConfig":
        """Create configuration from a dictionary."""
        container_data = data.get("container", {})
        server_data = data.get("server", {})

        return cls(
            container=ContainerConfig(**container_data) if container_data else ContainerConfig(),
            server=ServerConfig(**server_data) if server_data else ServerConfig(),
            log_level=data.get("log_level", "info"),
        )

    @classmethod
    def from_env(cls, prefix: str = "SERVICEGRAPH") -> "ServiceGraphConfig":
        """Load configuration from the file named by ``{prefix}_CONFIG``,
        then apply individual environment overrides.

        Environment variables:
            {prefix}_CONFIG: YAML file path (default: ./servicegraph.yaml)
            {prefix}_LOG_LEVEL: debug|info|warning|error
            {prefix}_DETECT_CYCLES: true|false
            {prefix}_MAX_RESOLUTION_DEPTH: Integer
            {prefix}_LIFECYCLE_LOGGING: true|false
            {prefix}_TRACK_TIMINGS: true|false
            {prefix}_HOST: Server bind address
            {prefix}_PORT: Server port
        """
        def get(key: str, default: str = None) -> Optional[str]:
            return os.environ.get(f"{prefix}_{key}", default)

        def get_bool(key: str, default: bool) -> bool:
            val = get(key)
            if val is None:
                return default
            return val.lower() in ("true", "1", "yes")

        def get_int(key: str, default: int) -> int:
            val = get(key)
            return int(val) if val else default

        config = cls.from_file(get("CONFIG", "servicegraph.yaml"))
        container = config.container
        server = config.server

        return cls(
            container=ContainerConfig(
                detect_cycles=get_bool("DETECT_CYCLES", container.detect_cycles),
                max_resolution_depth=get_int("MAX_RESOLUTION_DEPTH", container.max_resolution_depth),
                lifecycle_logging=get_bool("LIFECYCLE_LOGGING", container.lifecycle_logging),
                track_timings=get_bool("TRACK_TIMINGS", container.track_timings),
            ),
            server=ServerConfig(
                host=get("HOST", server.host),
                port=get_int("PORT", server.port),
                request_scopes=server.request_scopes,
                dispose_on_shutdown=server.dispose_on_shutdown,
            ),
            log_level=get("LOG_LEVEL", config.log_level),
        )

    @classmethod
    def for_testing(cls) -> "ServiceGraphConfig":
        """Quiet configuration for test suites."""
        return cls(
            container=ContainerConfig(lifecycle_logging=False, track_timings=False),
            log_level="warning",
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.log_level not in _LOG_LEVELS:
            errors.append(
                f"log_level must be one of {', '.join(_LOG_LEVELS)} (got {self.log_level!r})"
            )
        if not self.server.host:
            errors.append("server.host is required")

        return errors
