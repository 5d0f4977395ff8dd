"""Client IP extraction behind the edge proxy.

The socket peer is the proxy, so the per-IP guard keys on the first
header present, in priority order:

1. ``CF-Connecting-IP``
2. ``X-Real-IP``
3. ``X-Forwarded-For`` (leftmost entry)
4. ``request.client.host`` (direct access, local dev)
"""

from __future__ import annotations

from fastapi import Request

_REAL_IP_HEADER_NAMES = (
    "cf-connecting-ip",
    "x-real-ip",
    "x-forwarded-for",
)

UNKNOWN_IP = "unknown"


def get_real_ip(request: Request) -> str:
    """FastAPI dependency returning the caller's IP, or ``"unknown"``."""
    for header in _REAL_IP_HEADER_NAMES:
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_IP
