"""
config_store.observability.logging

Structured logging for the storage core.

Responsibilities:
- Configure `structlog` to emit one JSON object per event on stdout.
- Stamp every event with the service name and, when a tenant is bound, its namespace.
- Keep bound SQL parameter values out of log output.
- Hand out named bound loggers.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from typing import Any

import structlog

Processor = Callable[[Any, str, dict[str, Any]], dict[str, Any]]

# Keys that could carry client-supplied values; statements are logged by intent only.
_REDACTED_KEYS = frozenset({"params", "parameters", "values"})


def configure_logging(
    *, service_name: str, level: str, namespace_suffix: str = "mod_configuration"
) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            _add_namespace(namespace_suffix),
            _redact_bound_values,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str) -> Processor:
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _add_namespace(suffix: str) -> Processor:
    # Mirrors db.namespaces.namespace_for without re-validating the tenant id.
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        tenant_id = event_dict.get("tenant_id")
        if tenant_id and "namespace" not in event_dict:
            event_dict["namespace"] = f"{tenant_id}_{suffix}"
        return event_dict

    return processor


def _redact_bound_values(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in _REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[redacted]"
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Tenant/request ids arrive through contextvars bound in `observability.context`;
# the namespace stamp is derived from them at render time.
