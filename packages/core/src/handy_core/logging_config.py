"""Structured logging setup.

Modules log through ``structlog.get_logger()`` with an event name first and
context as keyword arguments:

    logger.info("profile_classified", risk_level="high", complexity_score=9)

Call ``configure_logging()`` once at application start-up. Until then
structlog uses its own defaults.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Union

import structlog

from .config import LogFormat, LoggingConfig, get_config
from .exceptions import ConfigurationError


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure an ISO 8601 UTC timestamp is present."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _resolve_format(fmt: Union[LogFormat, str]) -> LogFormat:
    try:
        return LogFormat(fmt.lower() if isinstance(fmt, str) else fmt)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown log format: {fmt}",
            config_key="HANDY_LOG_FORMAT",
            expected="json or console",
            actual=fmt,
        ) from e


def _resolve_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ConfigurationError(
            f"Unknown log level: {level}",
            config_key="HANDY_LOG_LEVEL",
            expected="DEBUG, INFO, WARNING, ERROR or CRITICAL",
            actual=level,
        )
    return value


def _env_stamper(env: str) -> Any:
    def add_env(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("env", env)
        return event_dict

    return add_env


def build_processors(fmt: LogFormat, env: Optional[str] = None) -> list[Any]:
    """Processor chain shared by both renderers, renderer last."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if env:
        processors.append(_env_stamper(env))
    if fmt == LogFormat.JSON:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    return processors


def configure_logging(
    config: Optional[LoggingConfig] = None,
    *,
    level: Optional[str] = None,
    fmt: Optional[Union[LogFormat, str]] = None,
    env: Optional[str] = None,
) -> None:
    """
    Configure structlog for the process.

    Args:
        config: Logging settings (default: the logging section of get_config())
        level: Override for config.level
        fmt: Override for config.format
        env: Environment name added to every event
            (default: get_config().env when config is omitted)

    Raises:
        ConfigurationError: If the level or format is not recognised
    """
    if config is None:
        settings = get_config()
        config = settings.logging
        env = env or settings.env
    resolved_format = _resolve_format(fmt if fmt is not None else config.format)
    level_value = _resolve_level(level or config.level)

    structlog.configure(
        processors=build_processors(resolved_format, env),
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
