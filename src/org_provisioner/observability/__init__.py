"""Structured logging for org-provisioner."""

from .logging import bound_identity, configure_logging, get_logger, request_id_ctx

__all__ = ["bound_identity", "configure_logging", "get_logger", "request_id_ctx"]
