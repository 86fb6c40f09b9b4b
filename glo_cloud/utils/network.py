# glo_cloud/utils/network.py
from fastapi import Request

# Checked in order after X-Forwarded-For
_IP_HEADERS = ("x-real-ip", "cf-connecting-ip", "x-client-ip")


def get_client_ip(request: Request) -> str:
    """Resolve the caller's address, preferring proxy headers over the socket peer."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            return value.strip()

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "unknown"
