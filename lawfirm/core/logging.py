"""
core/logging.py
---------------
structlog configuration for the API and scripts.

Console output when DEBUG is on, one JSON object per line otherwise.
Request-scoped fields (request_id, path, account_id) are bound through
contextvars by the route guard and merged into every event. Credential
fields are masked before rendering.
"""

import logging
import sys
from typing import Any, MutableMapping

import structlog

from lawfirm.core.config import settings

# Third-party loggers that are only useful while debugging
NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "botocore", "urllib3", "httpx")

SENSITIVE_KEYS = frozenset({
    "password",
    "new_password",
    "token",
    "access_token",
    "session_token",
    "two_factor_code",
    "secret",
    "api_key",
})
MASK = "***"


def mask_sensitive(_, __, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = MASK
    return event_dict


def configure_logging() -> None:
    level = logging.DEBUG if settings.DEBUG else logging.INFO
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    if not settings.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    if settings.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            mask_sensitive,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(**fields: Any) -> None:
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
