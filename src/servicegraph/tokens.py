"""Well-known tokens for services the container can provide about itself."""

from .interfaces import Token

# Configuration object the container was built from
CONFIG = Token("Config")

# Callable returning named loggers (logging.getLogger)
LOGGER_FACTORY = Token("LoggerFactory")

# The container itself, for factories that look services up lazily
CONTAINER = Token("Container")

__all__ = ["CONFIG", "LOGGER_FACTORY", "CONTAINER"]
