"""Default registrations and loading of user bootstrap callables."""

import importlib
import inspect
import logging
from typing import Callable, Optional

from .config import ServiceGraphConfig
from .container import Container
from .tokens import CONFIG, CONTAINER, LOGGER_FACTORY

logger = logging.getLogger(__name__)

Bootstrap = Callable[[Container], object]


def register_default_services(
    container: Container,
    config: Optional[ServiceGraphConfig] = None,
) -> None:
    """Register the built-in tokens that are not registered yet.

    Existing registrations win, so applications can override any of them
    before calling this.
    """
    if not container.is_registered(CONFIG):
        container.register_instance(
            CONFIG,
            config or ServiceGraphConfig(container=container.config),
            tags=["builtin"],
            description="Active servicegraph configuration",
        )
    if not container.is_registered(LOGGER_FACTORY):
        container.register_instance(
            LOGGER_FACTORY,
            logging.getLogger,
            tags=["builtin"],
            description="Named logger factory",
        )
    if not container.is_registered(CONTAINER):
        container.register_instance(
            CONTAINER,
            container,
            tags=["builtin"],
            description="The owning container",
        )


def load_bootstrap(target: str) -> Bootstrap:
    """Import ``package.module:function`` and return the callable.

    Raises:
        ValueError: ``target`` is not in ``module:attribute`` form.
        ImportError: The module cannot be imported.
        AttributeError: The attribute does not exist.
        TypeError: The attribute is not callable.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Bootstrap target must look like 'package.module:function', got {target!r}")
    module = importlib.import_module(module_name)
    func = module
    for part in attr.split("."):
        func = getattr(func, part)
    if not callable(func):
        raise TypeError(f"Bootstrap target {target!r} is not callable")
    return func


async def build_container(
    target: str,
    config: Optional[ServiceGraphConfig] = None,
) -> Container:
    """Create a container, run the bootstrap ``target`` on it, add defaults."""
    config = config or ServiceGraphConfig()
    bootstrap = load_bootstrap(target)
    container = Container(config.container)
    result = bootstrap(container)
    if inspect.isawaitable(result):
        await result
    register_default_services(container, config)
    logger.info(f"Bootstrapped {len(container)} service(s) from {target}")
    return container
