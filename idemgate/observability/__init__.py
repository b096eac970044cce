"""Observability — structured logging."""

from idemgate.observability.logging import get_logger, setup_logging

__all__ = ("get_logger", "setup_logging")
