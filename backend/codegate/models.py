import enum

from sqlalchemy import Column, Integer, String, DateTime, Text, BigInteger, Enum, Index
from sqlalchemy.sql import func
from .database import Base


class LogStatus(str, enum.Enum):
    SUCCESS = "Success"
    FAILED = "Failed"


class AccessCode(Base):
    """Model for storing hashed access codes and their destinations."""

    __tablename__ = "access_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code_hash = Column(String(255), nullable=False)  # never the plaintext
    target_url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    success_count = Column(BigInteger, default=0, nullable=False)
    fail_count = Column(BigInteger, default=0, nullable=False)

    def __repr__(self):
        return f"<AccessCode(id={self.id}, url={self.target_url[:50]}...)>"


class LogEntry(Base):
    """Append-only audit record of a single /check attempt."""

    __tablename__ = "logs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    code = Column(String(255), nullable=False)
    url = Column(Text, nullable=True)
    status = Column(
        Enum(LogStatus, name="log_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    ip = Column(String(64), nullable=False)
    user_agent = Column(String(500), nullable=True)
    referer = Column(String(500), nullable=True)
    device_type = Column(String(20), nullable=True)  # desktop, mobile, tablet, bot
    os = Column(String(50), nullable=True)
    browser_name = Column(String(50), nullable=True)
    languages = Column(String(255), nullable=True)
    country = Column(String(100), nullable=True)
    region = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    attempt_number = Column(Integer, nullable=False, default=1)
    response_ms = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_logs_code_ip', 'code', 'ip'),
        Index('idx_logs_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<LogEntry(id={self.id}, status={self.status}, attempt={self.attempt_number})>"
