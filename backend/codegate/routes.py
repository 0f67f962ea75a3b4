import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from .database import get_db
from .models import LogStatus
from .schemas import (
    CheckRequest,
    CheckResponse,
    AddCodeRequest,
    AddCodeResponse,
    DeleteCodeRequest,
    DeleteCodeResponse,
    AccessCodeResponse,
    LogEntryResponse,
    ErrorResponse
)
from .services import AccessCodeService, AttemptLogService, AuditWriteError
from .context import build_request_context
from .geo import GeoLocator, get_geo_locator
from .redis_client import RedisService
from .auth import require_admin
from .utils import get_client_ip
from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter()
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def enforce_rate_limit(request: Request) -> None:
    """Reject the request with 429 once its IP has used up the current window."""
    client_ip = get_client_ip(request)
    allowed, remaining = RedisService.check_rate_limit(client_ip)
    if not allowed:
        logger.warning(f"Rate limit exceeded for {client_ip}")
        raise HTTPException(
            status_code=429,
            detail="Too many attempts. Please try again later.",
            headers={
                "Retry-After": str(RedisService.retry_after(client_ip)),
                "X-RateLimit-Remaining": "0"
            }
        )


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000))


@router.post(
    "/check",
    response_model=CheckResponse,
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse}
    }
)
async def check_code(
    request: Request,
    data: CheckRequest,
    db: Session = Depends(get_db),
    geo: GeoLocator = Depends(get_geo_locator)
):
    """Validate an access code and return its destination URL."""
    started = getattr(request.state, "started_at", None) or time.perf_counter()

    code = data.code
    if code is None or not code.strip():
        raise HTTPException(status_code=400, detail="Code is required")

    context = build_request_context(request, browser=data.browser, device_type=data.device_type)
    location = await geo.lookup(context.ip)

    try:
        result = await run_in_threadpool(AccessCodeService.match_code, db, code)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Access code scan failed: {e}")
        try:
            AttemptLogService.record_attempt(
                db,
                code=code,
                status=LogStatus.FAILED,
                context=context,
                attempt_number=AttemptLogService.count_attempts(db, code, context.ip),
                response_ms=_elapsed_ms(started),
                geo=location
            )
        except AuditWriteError:
            pass  # logged by the service
        raise HTTPException(status_code=500, detail="Internal server error")

    if result.matched and result.code_id is not None:
        AccessCodeService.record_success(db, result.code_id)

    attempt_number = AttemptLogService.count_attempts(db, code, context.ip)
    status = LogStatus.SUCCESS if result.matched else LogStatus.FAILED

    try:
        AttemptLogService.record_attempt(
            db,
            code=code,
            status=status,
            context=context,
            attempt_number=attempt_number,
            response_ms=_elapsed_ms(started),
            url=result.url,
            geo=location
        )
    except AuditWriteError:
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Check {status.value} from {context.ip} (attempt {attempt_number})")
    return CheckResponse(valid=result.matched, url=result.url)


@admin_router.post(
    "/add",
    response_model=AddCodeResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}}
)
async def add_code(
    data: AddCodeRequest,
    db: Session = Depends(get_db)
):
    """Hash and store a new access code."""
    access_code = await run_in_threadpool(AccessCodeService.create_code, db, data.code, data.url)
    return AddCodeResponse(id=access_code.id)


@admin_router.post(
    "/delete",
    response_model=DeleteCodeResponse,
    responses={404: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}}
)
async def delete_code(
    data: DeleteCodeRequest,
    db: Session = Depends(get_db)
):
    """Delete an access code by ID."""
    if not AccessCodeService.delete_code(db, data.id):
        raise HTTPException(status_code=404, detail="Access code not found")

    return DeleteCodeResponse(id=data.id)


@admin_router.get("/codes", response_model=list[AccessCodeResponse])
async def list_codes(db: Session = Depends(get_db)):
    """List stored access codes without their hashes."""
    return AccessCodeService.list_codes(db)


@admin_router.get("/logs", response_model=list[LogEntryResponse])
async def list_logs(
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    """Recent audit log entries, newest first."""
    effective = min(limit or settings.ADMIN_LOG_LIMIT, settings.ADMIN_LOG_MAX_LIMIT)
    return AttemptLogService.recent_logs(db, effective)
