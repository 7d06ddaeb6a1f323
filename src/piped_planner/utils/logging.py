"""Structured logging for planner runs."""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional

import structlog
from structlog.contextvars import bind_contextvars


# Task definitions and deployment configs may carry credentials in container
# environments, so redaction also walks nested mappings.
REDACTED_KEYS = frozenset({
    "password",
    "secret",
    "token",
    "api_key",
    "authorization",
    "access_key",
    "secret_key",
    "aws_secret_access_key",
    "aws_session_token",
    "secretoptions",
    "repositorycredentials",
})


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in REDACTED_KEYS else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact(v) for v in value]
    return value


def redact_credentials(_, __, event_dict: dict) -> dict:
    """Redact credential-looking fields, including inside nested values."""
    return _redact(event_dict)


def render_domain_values(_, __, event_dict: dict) -> dict:
    """Render enums (application kinds, sync strategies) and paths as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
        elif isinstance(value, Path):
            event_dict[key] = str(value)
    return event_dict


def _processors(log_format: str) -> List[Any]:
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        render_domain_values,
        redact_credentials,
    ]
    if log_format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    return processors


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Send planner logs to stderr so stdout stays free for plan output."""
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)

    structlog.configure(
        processors=_processors(log_format),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def bind_deployment_context(
    deployment_id: Optional[str] = None,
    application_id: Optional[str] = None,
    application_kind: Optional[Enum] = None,
) -> None:
    """Bind deployment correlation fields to every log line of this run."""
    fields = {
        "deploymentId": deployment_id,
        "applicationId": application_id,
        "applicationKind": application_kind.value if application_kind else None,
    }
    bind_contextvars(**{k: v for k, v in fields.items() if v})
