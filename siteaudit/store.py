"""Audit persistence.

Both stores apply every status change as one atomic update: the new record is
validated against the transition table and the results/error invariant
before it becomes visible, so readers only ever see committed states.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from sqlalchemy import JSON, DateTime, String, Text, create_engine, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from siteaudit.errors import AuditNotFound, InvalidTransition, PersistenceError
from siteaudit.models import Audit, AuditStatus, can_transition

logger = logging.getLogger(__name__)


class AuditStore(Protocol):
    def create(self, audit: Audit) -> str: ...

    def get(self, audit_id: str) -> Audit: ...

    def update(
        self,
        audit_id: str,
        fields: dict[str, Any],
        expected_status: Optional[AuditStatus] = None,
    ) -> Audit: ...


def apply_update(
    current: Audit,
    fields: dict[str, Any],
    expected_status: Optional[AuditStatus] = None,
) -> Audit:
    """Return ``current`` with ``fields`` applied, or raise if the change is not allowed."""
    if expected_status is not None and current.status != expected_status:
        raise InvalidTransition(current.id, current.status.value, AuditStatus(fields.get("status", expected_status)).value)

    target = AuditStatus(fields.get("status", current.status))
    if target != current.status and not can_transition(current.status, target):
        raise InvalidTransition(current.id, current.status.value, target.value)
    if target == current.status and current.status in (AuditStatus.COMPLETED, AuditStatus.FAILED):
        raise InvalidTransition(current.id, current.status.value, target.value)

    data = current.model_dump()
    data.update(fields)
    data["status"] = target
    # Re-validates the results/summary/error invariant
    return Audit.model_validate(data)


class MemoryAuditStore:
    def __init__(self):
        self._audits: dict[str, Audit] = {}
        self._lock = threading.Lock()

    def create(self, audit: Audit) -> str:
        with self._lock:
            self._audits[audit.id] = audit.model_copy(deep=True)
        return audit.id

    def get(self, audit_id: str) -> Audit:
        with self._lock:
            audit = self._audits.get(audit_id)
            if audit is None:
                raise AuditNotFound(audit_id)
            return audit.model_copy(deep=True)

    def update(
        self,
        audit_id: str,
        fields: dict[str, Any],
        expected_status: Optional[AuditStatus] = None,
    ) -> Audit:
        with self._lock:
            current = self._audits.get(audit_id)
            if current is None:
                raise AuditNotFound(audit_id)
            updated = apply_update(current, fields, expected_status)
            self._audits[audit_id] = updated
            return updated.model_copy(deep=True)


# --- SQLAlchemy store ---

class Base(DeclarativeBase):
    pass


class AuditRow(Base):
    __tablename__ = "audits"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    website_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    company_domain: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    results: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    summary: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<AuditRow id={self.id} url={self.website_url!r} status={self.status}>"


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_row_values(audit: Audit) -> dict[str, Any]:
    data = audit.model_dump(mode="json")
    return {
        "id": audit.id,
        "website_url": audit.website_url,
        "email": audit.email,
        "name": audit.name,
        "company_domain": audit.company_domain,
        "status": audit.status.value,
        "results": data["results"],
        "summary": data["summary"],
        "error": audit.error,
        "created_at": audit.created_at,
        "completed_at": audit.completed_at,
    }


def _from_row(row: AuditRow) -> Audit:
    return Audit.model_validate({
        "id": row.id,
        "website_url": row.website_url,
        "email": row.email,
        "name": row.name,
        "company_domain": row.company_domain,
        "status": row.status,
        "results": row.results,
        "summary": row.summary,
        "error": row.error,
        "created_at": _aware(row.created_at),
        "completed_at": _aware(row.completed_at),
    })


class SqlAuditStore:
    def __init__(self, database_url: str, **engine_kwargs):
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        if database_url.startswith("sqlite"):
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
            if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
                engine_kwargs.setdefault("poolclass", StaticPool)
        else:
            engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    def create(self, audit: Audit) -> str:
        try:
            with self.Session.begin() as session:
                session.add(AuditRow(**_to_row_values(audit)))
        except SQLAlchemyError as e:
            logger.error("Could not create audit %s: %s", audit.id, e)
            raise PersistenceError(f"Could not create audit: {e}") from e
        return audit.id

    def get(self, audit_id: str) -> Audit:
        try:
            with self.Session() as session:
                row = session.get(AuditRow, audit_id)
                if row is None:
                    raise AuditNotFound(audit_id)
                return _from_row(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load audit {audit_id}: {e}") from e

    def update(
        self,
        audit_id: str,
        fields: dict[str, Any],
        expected_status: Optional[AuditStatus] = None,
    ) -> Audit:
        current = self.get(audit_id)
        updated = apply_update(current, fields, expected_status)
        values = _to_row_values(updated)
        values.pop("id")
        try:
            with self.Session.begin() as session:
                # Conditional on the status we validated against
                result = session.execute(
                    update(AuditRow)
                    .where(AuditRow.id == audit_id, AuditRow.status == current.status.value)
                    .values(**values)
                )
                if result.rowcount != 1:
                    now = session.scalar(select(AuditRow.status).where(AuditRow.id == audit_id))
                    raise InvalidTransition(audit_id, now or "missing", updated.status.value)
        except SQLAlchemyError as e:
            logger.error("Could not update audit %s: %s", audit_id, e)
            raise PersistenceError(f"Could not update audit {audit_id}: {e}") from e
        return updated


def create_store(database_url: str = "") -> AuditStore:
    if not database_url:
        return MemoryAuditStore()
    return SqlAuditStore(database_url)
