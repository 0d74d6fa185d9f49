from __future__ import annotations

import logging
from typing import Optional

from siteaudit.errors import AuditError, QueueFullError
from siteaudit.models import Audit, AuditStatus, AuditStatusView, utcnow
from siteaudit.store import AuditStore
from siteaudit.worker import AuditJob, AuditWorkerPool

logger = logging.getLogger(__name__)


class AuditService:
    """Entry points used by the HTTP layer: submit an audit, read its status."""

    def __init__(self, store: AuditStore, pool: AuditWorkerPool):
        self.store = store
        self.pool = pool

    def submit_audit(
        self,
        website_url: str,
        email: str,
        name: str,
        company_domain: Optional[str] = None,
    ) -> str:
        audit = Audit(
            website_url=website_url.strip(),
            email=email.strip(),
            name=name.strip(),
            company_domain=company_domain.strip() if company_domain else None,
        )
        audit_id = self.store.create(audit)
        logger.info("Audit %s created for %s", audit_id, audit.website_url)

        try:
            self.pool.enqueue(AuditJob(audit_id=audit_id))
        except QueueFullError as e:
            try:
                self.store.update(audit_id, {
                    "status": AuditStatus.FAILED,
                    "error": f"rejected: {e}",
                    "completed_at": utcnow(),
                }, expected_status=AuditStatus.PENDING)
            except AuditError:
                logger.exception("Could not mark rejected audit %s as failed", audit_id)
            raise
        return audit_id

    def get_audit_status(self, audit_id: str) -> AuditStatusView:
        return AuditStatusView.from_audit(self.store.get(audit_id))
