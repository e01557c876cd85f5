from __future__ import annotations

import ipaddress
from typing import Dict, Optional, Tuple
from urllib.parse import unquote, urlsplit

ENTRIES_PREFIX = "/entries/"

ROUTE_METHODS: Dict[str, str] = {
    "paste": "POST",
    "copy": "GET",
    "submit": "POST",
    "fetch": "GET",
    "debug": "GET",
}

_STATIC_ROUTES = {
    "/paste": "paste",
    "/copy": "copy",
    "/entries": "submit",
    "/debug": "debug",
}


def is_loopback_host(host: str) -> bool:
    normalized = (host or "").strip().lower()
    if not normalized:
        return False
    if normalized == "localhost":
        return True
    try:
        return ipaddress.ip_address(normalized).is_loopback
    except ValueError:
        return False


def route_for(path: str) -> Tuple[Optional[str], Optional[str]]:
    """Resolve a request path to ``(route, param)``; ``(None, None)`` when unknown."""
    path_only = urlsplit(path or "").path
    static = _STATIC_ROUTES.get(path_only)
    if static:
        return static, None
    if path_only.startswith(ENTRIES_PREFIX):
        identifier = path_only[len(ENTRIES_PREFIX) :]
        if "/" in identifier:
            return None, None
        return "fetch", unquote(identifier)
    return None, None
