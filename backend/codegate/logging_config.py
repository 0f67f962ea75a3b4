"""
Logging configuration for the access code service.

Every record carries the request id and the requester's IP so that the
operator log lines for a /check call can be matched to its audit row.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Optional

from .config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
client_ip_var: ContextVar[Optional[str]] = ContextVar("client_ip", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(request_id)s | %(client_ip)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set a request ID in context. Generates one if not provided."""
    rid = request_id or str(uuid.uuid4())[:8]
    request_id_var.set(rid)
    return rid


def current_client_ip() -> Optional[str]:
    return client_ip_var.get()


def set_client_ip(ip: Optional[str]) -> None:
    client_ip_var.set(ip)


class RequestContextFilter(logging.Filter):
    """Stamps request_id and client_ip onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.client_ip = current_client_ip() or "-"
        return True


def setup_logging() -> None:
    """Configure application logging. DEBUG setting lowers the level."""
    log_level = logging.DEBUG if settings.DEBUG else logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    console_handler.addFilter(RequestContextFilter())
    root_logger.addHandler(console_handler)

    # uvicorn already logs access lines; SQL and HTTP client chatter is noise here
    for name in ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
