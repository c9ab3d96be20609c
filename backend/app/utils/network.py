from __future__ import annotations

from typing import Optional

from fastapi import Request

FORWARDED_HEADERS = ("x-forwarded-for", "x-real-ip")


def get_client_ip(request: Optional[Request]) -> str:
    """Caller address for webhook audit logs.

    Proxy headers win over the socket peer (left-most X-Forwarded-For hop,
    then X-Real-IP). Returns "-" when nothing is known.
    """
    if request is None:
        return "-"
    for header in FORWARDED_HEADERS:
        value = request.headers.get(header)
        if value and value.split(",")[0].strip():
            return value.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "-"
