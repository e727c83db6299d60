from typing import Any

import structlog

LOG_LEVELS = {
    "INFO": 20,
    "DEBUG": 10,
    "TRACE": 5,
}

# Event keys whose values must never reach the log output in clear
SECRET_KEYS = frozenset({"token", "authorization", "auth_token"})


def mask_token(token: str | None) -> str:
    """Mask a token for logging, keeping only its first 6 and last 4 characters."""
    if not token:
        return "<none>"
    if len(token) <= 10:
        return "*" * len(token)
    return f"{token[:6]}...{token[-4:]}"


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:  # noqa: ANN401
    """structlog processor masking token-like keys bound to a log call."""
    for key in SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        event_dict[key] = mask_token(value if isinstance(value, str) else None)
    return event_dict


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    The level comes from ``advanced.log_level`` and is re-read on every call,
    so a reloaded configuration applies to loggers created afterwards.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    from kobgitupdater.config import get_config

    config = get_config()

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVELS.get(config.advanced.log_level, 20)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )

    return structlog.get_logger(name)
