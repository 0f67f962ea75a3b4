"""
Security utilities for access code hashing, URL validation and admin
credential comparison.
Codes are stored as salted PBKDF2-SHA256 hashes and can only be checked by
recomputing the hash for each stored record.
"""

import base64
import hashlib
import hmac
import ipaddress
import secrets
from typing import Optional, Tuple
from urllib.parse import urlparse

from .config import settings

HASH_ALGORITHM = "pbkdf2_sha256"
SALT_BYTES = 16

# Private/reserved IP ranges
PRIVATE_IP_RANGES = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),  # Link-local
    ipaddress.ip_network("::1/128"),  # IPv6 localhost
    ipaddress.ip_network("fc00::/7"),  # IPv6 private
    ipaddress.ip_network("fe80::/10"),  # IPv6 link-local
]


def _derive(code: str, salt: str, iterations: int) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", code.encode(), salt.encode(), iterations)
    return base64.b64encode(digest).decode("ascii").strip()


def hash_code(code: str, iterations: Optional[int] = None) -> str:
    """
    Hash an access code with a random salt.

    Returns a string of the form ``pbkdf2_sha256$<iterations>$<salt>$<digest>``
    so the cost factor travels with the hash.
    """
    if iterations is None:
        iterations = settings.CODE_HASH_ITERATIONS
    salt = secrets.token_hex(SALT_BYTES)
    return f"{HASH_ALGORITHM}${iterations}${salt}${_derive(code, salt, iterations)}"


def verify_code(code: str, code_hash: str) -> bool:
    """
    Check a plaintext code against a stored hash in constant time.
    Raises ValueError if the stored hash is malformed.
    """
    try:
        algorithm, iterations, salt, expected = code_hash.split("$", 3)
        rounds = int(iterations)
    except (AttributeError, ValueError) as exc:
        raise ValueError("Malformed code hash") from exc

    if algorithm != HASH_ALGORITHM or rounds < 1:
        raise ValueError(f"Unsupported code hash algorithm: {algorithm}")

    return hmac.compare_digest(_derive(code, salt, rounds), expected)


def tokens_match(provided: str, expected: str) -> bool:
    """Constant-time comparison for shared-secret credentials."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


def is_valid_ip(ip_str: Optional[str]) -> bool:
    """Check if a string is a literal IPv4 or IPv6 address."""
    if not ip_str:
        return False
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is private, localhost, or reserved."""
    try:
        ip = ipaddress.ip_address(ip_str)
        for network in PRIVATE_IP_RANGES:
            if ip in network:
                return True
        return False
    except ValueError:
        return False


def validate_target_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a destination URL before it is attached to an access code.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not url.strip():
        return False, "URL is required"

    if len(url) > 2048:
        return False, "URL too long (max 2048 characters)"

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False, "Invalid URL format"

    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https"):
        return False, f"Invalid URL scheme '{scheme}'. Only http and https are allowed"

    if not parsed.hostname:
        return False, "Could not extract host from URL"

    return True, None
