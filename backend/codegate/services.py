from dataclasses import dataclass
from typing import Optional
from sqlalchemy import func, update
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from .models import AccessCode, LogEntry, LogStatus
from .context import RequestContext
from .geo import GeoLocation
from .security import hash_code, verify_code
from .logging_config import get_logger

logger = get_logger(__name__)


class AuditWriteError(Exception):
    """Raised when an attempt could not be written to the audit log."""


@dataclass
class MatchResult:
    matched: bool
    url: Optional[str] = None
    code_id: Optional[int] = None


class AccessCodeService:
    """Service for managing hashed access codes."""

    @staticmethod
    def create_code(db: Session, code: str, target_url: str) -> AccessCode:
        """Hash and store a new access code."""
        access_code = AccessCode(
            code_hash=hash_code(code),
            target_url=target_url,
            success_count=0,
            fail_count=0
        )

        db.add(access_code)
        db.commit()
        db.refresh(access_code)

        logger.info(f"Created access code {access_code.id} -> {target_url[:50]}")
        return access_code

    @staticmethod
    def delete_code(db: Session, code_id: int) -> bool:
        """Delete an access code by ID."""
        access_code = db.query(AccessCode).filter(AccessCode.id == code_id).first()

        if not access_code:
            return False

        db.delete(access_code)
        db.commit()

        logger.info(f"Deleted access code {code_id}")
        return True

    @staticmethod
    def list_codes(db: Session) -> list[AccessCode]:
        """All access codes in stable scan order."""
        return db.query(AccessCode).order_by(AccessCode.id.asc()).all()

    @staticmethod
    def match_code(db: Session, code: str) -> MatchResult:
        """
        Find the first stored code whose hash matches the candidate.

        Every record has its own salt, so there is no index to consult:
        each hash is recomputed in turn until one matches. Storage errors
        propagate; a malformed individual hash is skipped.
        """
        for access_code in AccessCodeService.list_codes(db):
            try:
                if verify_code(code, access_code.code_hash):
                    return MatchResult(matched=True, url=access_code.target_url, code_id=access_code.id)
            except ValueError as e:
                logger.warning(f"Skipping access code {access_code.id}: {e}")
                continue

        return MatchResult(matched=False)

    @staticmethod
    def record_success(db: Session, code_id: int) -> None:
        """Increment the success counter of a matched code. Best-effort."""
        try:
            db.execute(
                update(AccessCode)
                .where(AccessCode.id == code_id)
                .values(success_count=AccessCode.success_count + 1)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Failed to increment success count for code {code_id}: {e}")


class AttemptLogService:
    """Service for the append-only attempt log."""

    @staticmethod
    def count_attempts(db: Session, code: str, ip: str) -> int:
        """
        Ordinal of the current attempt for (code, ip), counting this one.
        Falls back to 1 if the log cannot be queried.
        """
        try:
            prior = db.query(func.count(LogEntry.id)).filter(
                LogEntry.code == code,
                LogEntry.ip == ip
            ).scalar()
            return int(prior or 0) + 1
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Attempt count unavailable for {ip}, defaulting to 1: {e}")
            return 1

    @staticmethod
    def record_attempt(
        db: Session,
        code: str,
        status: LogStatus,
        context: RequestContext,
        attempt_number: int,
        response_ms: int,
        url: Optional[str] = None,
        geo: Optional[GeoLocation] = None
    ) -> LogEntry:
        """Append one attempt to the audit log. Raises AuditWriteError on failure."""
        geo = geo or GeoLocation()

        entry = LogEntry(
            code=code,
            url=url,
            status=status,
            ip=context.ip,
            user_agent=context.user_agent,
            referer=context.referer,
            device_type=context.device_type,
            os=context.os,
            browser_name=context.browser_name,
            languages=context.languages,
            country=geo.country,
            region=geo.region,
            city=geo.city,
            attempt_number=attempt_number,
            response_ms=response_ms
        )

        try:
            db.add(entry)
            db.commit()
            db.refresh(entry)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to write audit log entry for {context.ip}: {e}")
            raise AuditWriteError("Audit log write failed") from e

        return entry

    @staticmethod
    def recent_logs(db: Session, limit: int) -> list[LogEntry]:
        """Most recent log entries, newest first."""
        return (
            db.query(LogEntry)
            .order_by(LogEntry.created_at.desc(), LogEntry.id.desc())
            .limit(limit)
            .all()
        )
