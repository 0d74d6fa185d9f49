import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from siteaudit import __version__
from siteaudit.config import AUDIT_RATE_LIMIT, DATABASE_URL
from siteaudit.errors import AuditNotFound, QueueFullError
from siteaudit.log import setup_logging
from siteaudit.models import AuditCreated, AuditRequest, AuditStatus, AuditStatusResponse
from siteaudit.pipeline import AuditPipeline
from siteaudit.service import AuditService
from siteaudit.store import create_store
from siteaudit.worker import AuditWorkerPool

logger = logging.getLogger(__name__)


def build_service(database_url: str = DATABASE_URL) -> AuditService:
    store = create_store(database_url)
    pool = AuditWorkerPool(AuditPipeline(store))
    return AuditService(store, pool)


def create_app(service: Optional[AuditService] = None, rate_limit: str = AUDIT_RATE_LIMIT) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        app.state.service.pool.start()
        yield
        app.state.service.pool.shutdown(drain=False)

    app = FastAPI(title="Site Audit", version=__version__, lifespan=lifespan)
    app.state.service = service or build_service()
    limiter = Limiter(key_func=get_remote_address)
    app.state.limiter = limiter

    @app.get("/health")
    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/audit", response_model=AuditCreated, status_code=202)
    @limiter.limit(rate_limit)
    async def start_audit(req: AuditRequest, request: Request):
        service: AuditService = request.app.state.service
        try:
            audit_id = service.submit_audit(
                str(req.website_url), str(req.email), req.name, req.company_domain,
            )
        except QueueFullError as e:
            raise HTTPException(status_code=503, detail=f"Audit queue is busy, try again later: {e}")
        return AuditCreated(audit_id=audit_id, status=AuditStatus.PENDING)

    @app.get("/api/audit/{audit_id}", response_model=AuditStatusResponse)
    async def get_audit_status(audit_id: str, request: Request):
        service: AuditService = request.app.state.service
        try:
            view = service.get_audit_status(audit_id)
        except AuditNotFound:
            raise HTTPException(status_code=404, detail="Audit not found")
        return AuditStatusResponse(audit=view)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limited(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit hit by %s: %s", get_remote_address(request), exc.detail)
        return JSONResponse(
            status_code=429,
            content={"success": False, "message": "Too many audit requests, please try again later"},
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "An unexpected error occurred"},
        )

    return app


app = create_app()
