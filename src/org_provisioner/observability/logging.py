"""structlog setup for the provisioner.

Events from the engine, placement and stores are structlog key/value events;
the boto3 wrappers and the backoff helper log through stdlib ``logging``.
Both end up on one handler, rendered as JSON lines (or console output when
``LOG_FORMAT=console``), and every line carries:

- ``service`` and ``environment``
- ``request_id`` when serving an HTTP request
- ``identity_key`` while a request is being advanced

Usage::

    configure_logging()
    logger = get_logger(__name__)
    with bound_identity("a@example.com"):
        logger.info("creation_submitted", create_request_id="car-1")
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

import structlog

SERVICE_NAME = "org-provisioner"

# Set by RequestIDMiddleware for the duration of an HTTP request.
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_QUIET_LOGGERS = ("botocore", "boto3", "urllib3", "uvicorn.access")

_configured = False


def _add_request_id(logger: Any, method_name: str, event_dict: dict) -> dict:
    rid = request_id_ctx.get()
    if rid is not None:
        event_dict["request_id"] = rid
    return event_dict


def _service_fields(environment: str):
    def add_service(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service


def _shared_processors(environment: str) -> list:
    return [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        _service_fields(environment),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
    environment: str | None = None,
) -> None:
    """Configure structlog and the root stdlib logger once per process.

    ``level`` defaults to ``LOG_LEVEL`` (INFO). ``json_output`` defaults to
    ``LOG_FORMAT != "console"``. Inside Lambda the runtime's bootstrap
    handler on the root logger is replaced so lines are not emitted twice.
    """
    global _configured
    if _configured:
        return
    _configured = True

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "json") != "console"
    environment = environment or os.environ.get("ENVIRONMENT", "local")

    shared = _shared_processors(environment)
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def bound_identity(identity_key: str) -> Iterator[None]:
    """Attach ``identity_key`` to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(identity_key=identity_key):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
