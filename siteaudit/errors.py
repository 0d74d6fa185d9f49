"""Error taxonomy for the audit pipeline.

Fatal errors (``FetchError``, ``PipelineTimeoutError``) end a job in the
``failed`` state. Local errors (``ExtractionError``, ``LinkProbeError``) are
handled where they are raised and only show up as absent facts or broken
links. ``PersistenceError`` is never swallowed by the pipeline.
"""

from __future__ import annotations

from typing import Optional


class AuditError(Exception):
    """Base class for every error raised by the audit core."""


FETCH_REASONS = ("timeout", "dns", "tls", "http4xx5xx", "network", "redirect_loop")


class FetchError(AuditError):
    def __init__(
        self,
        reason: str,
        message: str,
        url: str = "",
        status_code: Optional[int] = None,
    ):
        self.reason = reason
        self.message = message
        self.url = url
        self.status_code = status_code
        super().__init__(f"{reason}: {message}")


class ExtractionError(AuditError):
    def __init__(self, extractor: str, cause: BaseException):
        self.extractor = extractor
        self.cause = cause
        super().__init__(f"{extractor} extractor failed: {cause}")


class LinkProbeError(AuditError):
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class PipelineTimeoutError(AuditError):
    def __init__(self, seconds: float):
        self.seconds = seconds
        super().__init__(f"timeout: audit exceeded {seconds:g}s")


class PersistenceError(AuditError):
    """The audit store could not read or write a record."""


class AuditNotFound(AuditError):
    def __init__(self, audit_id: str):
        self.audit_id = audit_id
        super().__init__(f"Audit {audit_id} not found")


class InvalidTransition(AuditError):
    def __init__(self, audit_id: str, current: str, target: str):
        self.audit_id = audit_id
        self.current = current
        self.target = target
        super().__init__(f"Audit {audit_id}: cannot move from {current} to {target}")


class QueueFullError(AuditError):
    """The worker pool queue is at capacity."""
