"""servicegraph CLI: validate, inspect, and serve a bootstrapped container.

Usage:
    servicegraph validate myapp.wiring:bootstrap          # exit 1 if the graph is broken
    servicegraph inspect myapp.wiring:bootstrap [--json]  # list services and cycles
    servicegraph serve myapp.wiring:bootstrap             # start the introspection server

The target is a ``package.module:function`` callable that receives a
``Container`` and registers services on it (sync or async).
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .bootstrap import build_container
from .config import ServiceGraphConfig
from .interfaces import describe_key

_LOG_LEVELS = ["debug", "info", "warning", "error"]


def _load_config(args: argparse.Namespace) -> ServiceGraphConfig:
    if getattr(args, "config", None):
        config = ServiceGraphConfig.from_file(args.config)
    else:
        config = ServiceGraphConfig.from_env()
    if getattr(args, "log_level", None):
        config.log_level = args.log_level
    return config


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build(args: argparse.Namespace, config: ServiceGraphConfig):
    """Bootstrap the target container, or print why it failed and return None."""
    try:
        return asyncio.run(build_container(args.target, config))
    except (ImportError, AttributeError, ValueError, TypeError) as exc:
        print(f"❌ Could not load {args.target}: {exc}", file=sys.stderr)
        return None


def cmd_validate(args: argparse.Namespace) -> int:
    """Check that every declared dependency is registered and acyclic."""
    config = _load_config(args)
    _configure_logging(config.log_level)
    container = _build(args, config)
    if container is None:
        return 1

    result = container.validate()
    cycles = container.find_cycles()
    asyncio.run(container.dispose())

    for error in result.errors:
        print(f"❌ {error}")
    for cycle in cycles:
        print(f"❌ Circular dependency: {' -> '.join(describe_key(t) for t in cycle)}")
    if result.valid and not cycles:
        print(f"✅ {len(container)} service(s), dependency graph is valid")
        return 0
    return 1


def cmd_inspect(args: argparse.Namespace) -> int:
    """Print the registered services, their dependencies and tags."""
    config = _load_config(args)
    _configure_logging(config.log_level)
    container = _build(args, config)
    if container is None:
        return 1

    services = []
    for entry in container.get_all_services():
        meta = entry.metadata
        services.append({
            "token": describe_key(entry.token),
            "lifetime": meta.lifetime.value,
            "strategy": meta.strategy_kind,
            "dependencies": [describe_key(d) for d in meta.dependencies],
            "tags": sorted(meta.tags),
            "description": meta.description,
        })
    cycles = [[describe_key(t) for t in cycle] for cycle in container.find_cycles()]
    asyncio.run(container.dispose())

    if args.json:
        print(json.dumps({"services": services, "cycles": cycles}, indent=2))
        return 0

    for svc in services:
        deps = f" <- {', '.join(svc['dependencies'])}" if svc["dependencies"] else ""
        tags = f" [{', '.join(svc['tags'])}]" if svc["tags"] else ""
        print(f"{svc['token']} ({svc['lifetime']}, {svc['strategy']}){deps}{tags}")
    for cycle in cycles:
        print(f"cycle: {' -> '.join(cycle)}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the introspection HTTP server for the target container."""
    from .server import run_server

    config = _load_config(args)
    _configure_logging(config.log_level)
    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}", file=sys.stderr)
        return 1

    container = _build(args, config)
    if container is None:
        return 1

    run_server(
        container,
        config=config.server,
        host=args.host,
        port=args.port,
        log_level=config.log_level,
    )
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="servicegraph",
        description="servicegraph: inspect and serve dependency injection containers",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("target", help="Bootstrap callable, e.g. myapp.wiring:bootstrap")
        sub.add_argument("--config", "-c", type=str, default=None,
                         help="Path to YAML config (default: $SERVICEGRAPH_CONFIG)")
        sub.add_argument("--log-level", type=str, default=None, choices=_LOG_LEVELS)

    # validate
    validate_parser = subparsers.add_parser("validate", help="Validate the dependency graph")
    add_common(validate_parser)

    # inspect
    inspect_parser = subparsers.add_parser("inspect", help="List registered services")
    add_common(inspect_parser)
    inspect_parser.add_argument("--json", action="store_true", help="Emit JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the introspection HTTP server")
    add_common(serve_parser)
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", "-p", type=int, default=None)

    args = parser.parse_args(argv)

    if args.command == "validate":
        sys.exit(cmd_validate(args))
    elif args.command == "inspect":
        sys.exit(cmd_inspect(args))
    elif args.command == "serve":
        sys.exit(cmd_serve(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
