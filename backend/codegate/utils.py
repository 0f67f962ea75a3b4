from typing import Optional
from fastapi import Request
from user_agents import parse as parse_user_agent  # type: ignore

from .security import is_valid_ip

UNKNOWN_IP = "Unknown"
MAX_IP_LENGTH = 64


def get_client_ip(request: Request) -> str:
    """
    Extract client IP, preferring the first X-Forwarded-For entry.
    Entries that are not IP addresses are ignored.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if len(first) <= MAX_IP_LENGTH and is_valid_ip(first):
            return first

    if request.client and request.client.host:
        return request.client.host[:MAX_IP_LENGTH]

    return UNKNOWN_IP


def detect_device_type(user_agent_string: Optional[str]) -> str:
    """Detect device type from user agent."""
    if not user_agent_string:
        return "desktop"

    try:
        user_agent = parse_user_agent(user_agent_string)

        if user_agent.is_bot:
            return "bot"
        elif user_agent.is_tablet:
            return "tablet"
        elif user_agent.is_mobile:
            return "mobile"
        return "desktop"
    except Exception:
        return "desktop"


def detect_os(user_agent_string: Optional[str]) -> str:
    """Detect operating system family from user agent."""
    if not user_agent_string:
        return "Unknown"

    try:
        family = parse_user_agent(user_agent_string).os.family
    except Exception:
        return "Unknown"
    if not family or family == "Other":
        return "Unknown"
    return family


def detect_browser(user_agent_string: Optional[str]) -> str:
    """Detect browser family from user agent."""
    if not user_agent_string:
        return "Other"

    try:
        family = parse_user_agent(user_agent_string).browser.family
    except Exception:
        return "Other"
    return family or "Other"


def parse_languages(accept_language: Optional[str]) -> Optional[str]:
    """Reduce an Accept-Language header to its tags, e.g. 'en-US,en'."""
    if not accept_language:
        return None

    tags = []
    for part in accept_language.split(","):
        tag = part.split(";")[0].strip()
        if tag and tag != "*":
            tags.append(tag)
    return ",".join(tags)[:255] if tags else None


def truncate(value: Optional[str], length: int) -> Optional[str]:
    """Truncate a header value to fit its column."""
    if not value:
        return None
    return value[:length]
