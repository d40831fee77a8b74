from __future__ import annotations

import logging as py_logging
import re
from typing import Any, MutableMapping, Optional

import structlog

from weather_company.config import LoggingConfig, app_config

SERVICE_NAME = "weather_company"

_API_KEY_PATTERN = re.compile(r"(apiKey=)[^&\s]*")
_configured = False


def redact_api_key(_logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Mask ``apiKey=`` query values in any string field before rendering."""
    for key, value in event_dict.items():
        if isinstance(value, str) and "apiKey=" in value:
            event_dict[key] = _API_KEY_PATTERN.sub(r"\1***", value)
    return event_dict


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Configure structlog once per process; later calls are no-ops."""
    global _configured
    if _configured:
        return

    config = config or app_config.logging
    level = getattr(py_logging, str(config.level).upper(), py_logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_api_key,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if config.json else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    py_logging.basicConfig(level=level)
    _configured = True


def get_logger(name: str = __name__):
    """Return a structlog logger bound to this library's service name."""
    if not _configured:
        setup_logging()
    return structlog.get_logger(name).bind(service=SERVICE_NAME)
