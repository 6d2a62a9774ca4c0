"""Logging for multibatch.

Usage:
    from multibatch.core.logging import LoggerConfigurator, logger

    logger.info("plain message")

    batch_logger = LoggerConfigurator.configure_logger(
        "multibatch.batch", dimensions={"collection": "users"}
    )
    batch_logger.with_context(batch_index=3).debug("Committing batch")
"""

import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple

from multibatch.core.config import settings

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that carries key/value dimensions on every record.

    Dimensions are appended to the message as ``[key=value ...]`` and are
    also attached to the record as ``record.dimensions`` for handlers that
    want structured output.
    """

    def __init__(self, logger: logging.Logger, dimensions: Optional[Dict[str, Any]] = None):
        """Initialize the adapter.

        Args:
            logger: Underlying stdlib logger
            dimensions: Key/value pairs attached to every message
        """
        super().__init__(logger, {})
        self.dimensions: Dict[str, Any] = dict(dimensions or {})

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        """Render dimensions into the message and the record extras."""
        extra = dict(kwargs.get("extra") or {})
        extra["dimensions"] = self.dimensions
        kwargs["extra"] = extra
        if self.dimensions:
            rendered = " ".join(f"{k}={v}" for k, v in self.dimensions.items())
            msg = f"{msg} [{rendered}]"
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a child logger with additional dimensions."""
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions})


class LoggerConfigurator:
    """Creates configured ContextualLogger instances.

    As a library, multibatch only attaches a ``NullHandler``: output goes
    wherever the application routes the ``multibatch`` logger. Setting
    ``MULTIBATCH_LOCAL_DEVELOPMENT`` adds a stdout handler at DEBUG, and an
    explicit ``MULTIBATCH_LOG_LEVEL`` sets the logger's level.
    """

    _configured: bool = False

    @classmethod
    def configure_handlers(cls, target: logging.Logger) -> None:
        """Attach the package's handlers to target and apply any configured level."""
        if not any(isinstance(h, logging.NullHandler) for h in target.handlers):
            target.addHandler(logging.NullHandler())

        if settings.LOCAL_DEVELOPMENT:
            if not any(type(h) is logging.StreamHandler for h in target.handlers):
                handler = logging.StreamHandler(sys.stdout)
                handler.setFormatter(logging.Formatter(_LOG_FORMAT))
                target.addHandler(handler)
            target.setLevel(logging.DEBUG)
        elif "LOG_LEVEL" in settings.model_fields_set:
            target.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))

    @classmethod
    def _ensure_root_handler(cls) -> None:
        if cls._configured:
            return
        cls.configure_handlers(logging.getLogger("multibatch"))
        cls._configured = True

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[Dict[str, Any]] = None
    ) -> ContextualLogger:
        """Get a contextual logger for a module or component.

        Args:
            name: Logger name (dotted, e.g. "multibatch.batch")
            dimensions: Key/value pairs attached to every message

        Returns:
            ContextualLogger wrapping the named stdlib logger
        """
        cls._ensure_root_handler()
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger("multibatch")
