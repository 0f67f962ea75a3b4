"""
Request context extraction for audit records.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from .utils import (
    get_client_ip,
    detect_device_type,
    detect_os,
    detect_browser,
    parse_languages,
    truncate,
)


@dataclass
class RequestContext:
    ip: str
    user_agent: Optional[str]
    referer: Optional[str]
    languages: Optional[str]
    device_type: str
    os: str
    browser_name: str


def build_request_context(
    request: Request,
    browser: Optional[str] = None,
    device_type: Optional[str] = None,
) -> RequestContext:
    """
    Derive requester identity and environment from the inbound request.
    Client-supplied browser/device hints win over the user-agent heuristics.
    """
    user_agent = request.headers.get("User-Agent")
    browser_hint = (browser or "").strip()
    device_hint = (device_type or "").strip()

    return RequestContext(
        ip=get_client_ip(request),
        user_agent=truncate(user_agent, 500),
        referer=truncate(request.headers.get("Referer"), 500),
        languages=parse_languages(request.headers.get("Accept-Language")),
        device_type=truncate(device_hint, 20) or detect_device_type(user_agent),
        os=truncate(detect_os(user_agent), 50),
        browser_name=truncate(browser_hint, 50) or truncate(detect_browser(user_agent), 50),
    )
