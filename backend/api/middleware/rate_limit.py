"""
Rate limiting middleware using slowapi.

Protects the public signup endpoint against scripted abuse. Limits are keyed
on the client IP, taken from proxy headers when they carry a valid public
address.

Rate Limits:
- Signup: SIGNUP_RATE_LIMIT (default 10 per minute)
- Default: DEFAULT_RATE_LIMIT (default 100 per minute)

Storage is RATE_LIMIT_STORAGE_URL: ``memory://`` for a single process, or a
``redis://`` URL when several workers must share counters.
"""

import ipaddress
import logging
import re

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from infrastructure.config import get_settings

logger = logging.getLogger(__name__)

# Simple pattern to quickly reject obviously invalid IPs before parsing
_IP_LIKE = re.compile(r"^[\d.:a-fA-F]+$")


def _is_valid_ip(value: str) -> bool:
    """Return True if *value* looks like a valid IPv4 or IPv6 address."""
    if not _IP_LIKE.match(value):
        return False
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def _is_private_ip(value: str) -> bool:
    """Return True if *value* is a private, loopback, or link-local address.

    Private addresses in X-Forwarded-For can be spoofed by the client.
    """
    try:
        addr = ipaddress.ip_address(value)
        return addr.is_private or addr.is_loopback or addr.is_link_local
    except ValueError:
        return False


def get_client_ip(request: Request) -> str:
    """Client IP from X-Forwarded-For / X-Real-IP, falling back to the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # First entry is the original client
        candidate = forwarded.split(",")[0].strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        candidate = real_ip.strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    return get_remote_address(request)


_settings = get_settings()

# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "signup": _settings.signup_rate_limit,
    "default": _settings.default_rate_limit,
}

if _settings.rate_limit_storage_url.startswith("memory://"):
    logger.info("Rate limiter using in-memory storage")

limiter = Limiter(
    key_func=get_client_ip,
    storage_uri=_settings.rate_limit_storage_url,
    default_limits=[RATE_LIMITS["default"]],
    enabled=_settings.rate_limit_enabled,
)


def get_rate_limit(endpoint: str) -> str:
    """
    Get rate limit configuration for a specific endpoint.

    Example:
        >>> get_rate_limit("unknown")
        "100/minute"
    """
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
