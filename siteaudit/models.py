from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, HttpUrl, model_serializer, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {AuditStatus.COMPLETED, AuditStatus.FAILED}

ALLOWED_TRANSITIONS: dict[AuditStatus, set[AuditStatus]] = {
    AuditStatus.PENDING: {AuditStatus.PROCESSING, AuditStatus.FAILED},
    AuditStatus.PROCESSING: {AuditStatus.COMPLETED, AuditStatus.FAILED},
    AuditStatus.COMPLETED: set(),
    AuditStatus.FAILED: set(),
}


def can_transition(current: AuditStatus, target: AuditStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


Severity = Literal["critical", "warning", "info"]


# --- Fact sub-records ---

class TextFact(BaseModel):
    content: Optional[str] = None
    length: int = 0
    status: Literal["missing", "too_short", "good", "too_long"] = "missing"


class MetaFacts(BaseModel):
    title: TextFact
    description: TextFact
    keywords: list[str] = []
    canonical: Optional[str] = None
    favicon: Optional[str] = None
    lang: Optional[str] = None
    robots: Optional[str] = None


class Heading(BaseModel):
    content: str
    length: int


class HeadingIssue(BaseModel):
    severity: Severity
    message: str


class HeadingsFacts(BaseModel):
    h1: list[Heading] = []
    h2: list[Heading] = []
    h3: list[Heading] = []
    h4: list[Heading] = []
    h5: list[Heading] = []
    h6: list[Heading] = []
    skipped_levels: list[str] = []
    issues: list[HeadingIssue] = []

    @property
    def h1_count(self) -> int:
        return len(self.h1)


class ImageFact(BaseModel):
    src: str
    alt: Optional[str] = None
    has_alt: bool


class ImagesFacts(BaseModel):
    items: list[ImageFact] = []
    total: int = 0
    missing_alt: int = 0


LinkOutcome = Literal["unchecked", "reachable", "broken", "error", "skipped"]


class LinkRecord(BaseModel):
    href: str
    text: str = ""
    is_internal: bool
    outcome: LinkOutcome = "unchecked"
    status_code: Optional[int] = None
    reason: Optional[str] = None

    @property
    def is_broken(self) -> bool:
        return self.outcome in ("broken", "error")


class LinksFacts(BaseModel):
    records: list[LinkRecord] = []
    total: int = 0
    internal: int = 0
    external: int = 0
    invalid: int = 0
    checked: int = 0
    broken: list[LinkRecord] = []


class ResponseHeaders(BaseModel):
    server: Optional[str] = None
    content_type: Optional[str] = None
    cache_control: Optional[str] = None


class TechnicalFacts(BaseModel):
    ssl: bool
    status_code: int
    headers: ResponseHeaders
    redirect_count: int = 0
    response_time_ms: int = 0
    has_viewport: bool = False


class PerformanceFacts(BaseModel):
    page_size_bytes: int = 0
    load_time_ms: int = 0
    render_blocking_scripts: int = 0
    script_count: int = 0
    stylesheet_count: int = 0


class SocialFacts(BaseModel):
    open_graph: dict[str, str] = {}
    twitter: dict[str, str] = {}
    missing_open_graph: list[str] = []


class TrackingFacts(BaseModel):
    tools: list[str] = []
    gtm_container: Optional[str] = None
    search_console_verified: bool = False


class SchemaFacts(BaseModel):
    json_ld_blocks: int = 0
    types: list[str] = []
    invalid_blocks: int = 0
    microdata_types: list[str] = []
    has_rdfa: bool = False


class AccessibilityFacts(BaseModel):
    has_lang: bool = False
    images_missing_alt: int = 0
    inputs_without_label: int = 0
    links_without_text: int = 0
    buttons_without_name: int = 0
    landmarks: int = 0


class RobotsTxtFacts(BaseModel):
    exists: bool
    content: Optional[str] = None
    has_sitemap: bool = False
    sitemaps: list[str] = []
    disallow_count: int = 0
    allow_count: int = 0
    blocks_page: bool = False
    error: Optional[str] = None


class SitemapFacts(BaseModel):
    exists: bool
    url_count: int = 0
    is_index: bool = False
    sitemap_count: int = 0
    error: Optional[str] = None


class FactBundle(BaseModel):
    """Output of all extractors for one audit. ``None`` means the extractor failed."""

    meta: Optional[MetaFacts] = None
    headings: Optional[HeadingsFacts] = None
    images: Optional[ImagesFacts] = None
    links: Optional[LinksFacts] = None
    technical: Optional[TechnicalFacts] = None
    performance: Optional[PerformanceFacts] = None
    social: Optional[SocialFacts] = None
    tracking: Optional[TrackingFacts] = None
    structured_data: Optional[SchemaFacts] = None
    accessibility: Optional[AccessibilityFacts] = None
    robots_txt: Optional[RobotsTxtFacts] = None
    sitemap: Optional[SitemapFacts] = None

    def missing(self) -> list[str]:
        return [
            name for name in type(self).model_fields if getattr(self, name) is None
        ]


# --- Scoring output ---

class Recommendation(BaseModel):
    type: str
    severity: Severity
    description: str
    impact: str
    how_to_fix: str


class AuditSummary(BaseModel):
    score: int
    critical_issues: int = 0
    warnings: int = 0
    passed: int = 0
    recommendations: list[Recommendation] = []


# --- Audit record ---

class Audit(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    website_url: str
    email: str
    name: str
    company_domain: Optional[str] = None
    status: AuditStatus = AuditStatus.PENDING
    results: Optional[FactBundle] = None
    summary: Optional[AuditSummary] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_status_fields(self) -> "Audit":
        completed = self.status == AuditStatus.COMPLETED
        if completed != (self.results is not None and self.summary is not None):
            raise ValueError("results and summary must be set exactly when status is completed")
        if (self.status == AuditStatus.FAILED) != (self.error is not None):
            raise ValueError("error must be set exactly when status is failed")
        return self


class AuditStatusView(BaseModel):
    id: str
    status: AuditStatus
    results: Optional[FactBundle] = None
    summary: Optional[AuditSummary] = None
    error: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_audit(cls, audit: Audit) -> "AuditStatusView":
        view = cls(
            id=audit.id,
            status=audit.status,
            created_at=audit.created_at,
            completed_at=audit.completed_at,
        )
        if audit.status == AuditStatus.COMPLETED:
            view.results = audit.results
            view.summary = audit.summary
        elif audit.status == AuditStatus.FAILED:
            view.error = audit.error
        return view

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler):
        data = handler(self)
        for key in ("results", "summary", "error", "completed_at"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


# --- HTTP request/response models ---

class AuditRequest(BaseModel):
    website_url: HttpUrl
    email: EmailStr
    name: str = Field(min_length=2)
    company_domain: Optional[str] = Field(
        default=None, pattern=r"^[a-zA-Z0-9][a-zA-Z0-9-]{1,61}[a-zA-Z0-9]\.[a-zA-Z]{2,}$"
    )


class AuditCreated(BaseModel):
    success: bool = True
    message: str = "Audit started successfully"
    audit_id: str
    status: AuditStatus


class AuditStatusResponse(BaseModel):
    success: bool = True
    audit: AuditStatusView
