# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Client identity for rate limiting."""

from collections.abc import Mapping

BEARER_PREFIX = "Bearer "


def _header(headers: Mapping[str, str], name: str) -> str:
    target = name.lower()
    for key, value in headers.items():
        if key.lower() == target:
            return value.strip()
    return ""


def derive_client_key(
    headers: Mapping[str, str], remote_addr: str | None = None
) -> str:
    """
    Pick the identity a request is rate-limited under.

    Order of preference: the ``X-API-Key`` header, then the token of an
    ``Authorization: Bearer`` header, then the client IP (``X-Real-IP``, the
    first ``X-Forwarded-For`` hop, then ``remote_addr``). The result is
    namespaced (``apikey:``, ``bearer:``, ``ip:``) so an API key can never
    collide with an IP address. Header names are matched case-insensitively.

    Returns ``"ip:unknown"`` when nothing identifies the caller.
    """
    api_key = _header(headers, "X-API-Key")
    if api_key:
        return f"apikey:{api_key}"

    auth = _header(headers, "Authorization")
    if len(auth) > len(BEARER_PREFIX) and auth.startswith(BEARER_PREFIX):
        token = auth[len(BEARER_PREFIX) :].strip()
        if token:
            return f"bearer:{token}"

    ip = _header(headers, "X-Real-IP")
    if not ip:
        forwarded = _header(headers, "X-Forwarded-For")
        ip = forwarded.split(",")[0].strip() if forwarded else ""
    if not ip:
        ip = (remote_addr or "").strip()
    return f"ip:{ip or 'unknown'}"


__all__ = ["derive_client_key"]
