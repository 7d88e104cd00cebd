"""Audit logging package."""

from freezer.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
