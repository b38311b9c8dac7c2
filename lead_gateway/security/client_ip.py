"""Client key extraction for per-client rate limiting."""

from fastapi import Request

UNKNOWN_CLIENT = "unknown"


def client_key(request: Request) -> str:
    """Identify the requester by IP address.

    Prefers the ASGI peer address, then the first X-Forwarded-For hop.
    Requests with neither share the ``"unknown"`` key and therefore one quota.
    """
    if request.client and request.client.host:
        return request.client.host

    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    return UNKNOWN_CLIENT
