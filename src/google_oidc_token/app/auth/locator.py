# src/google_oidc_token/app/auth/locator.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Protocol, Tuple

from fastapi import Request

from google_oidc_token.app.core.trace import auth_trace


class RequestLike(Protocol):
    body: Any
    query: Any
    headers: Any


@dataclass(frozen=True)
class RequestData:
    """Snapshot of the three places a client may put the token."""
    body: Any = None
    query: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, Any] = field(default_factory=dict)
    request: Any = None  # original host request, forwarded to verify callbacks


async def request_data(request: Request) -> RequestData:
    """
    Read a Starlette/FastAPI request into a RequestData.
    JSON and form bodies are parsed; anything else leaves body empty.
    """
    body: Any = None
    ctype = (request.headers.get("content-type") or "").split(";", 1)[0].strip().lower()
    if ctype == "application/json" or ctype.endswith("+json"):
        try:
            body = await request.json()
        except ValueError:
            body = None
    elif ctype in ("application/x-www-form-urlencoded", "multipart/form-data"):
        body = dict(await request.form())
    return RequestData(body=body, query=request.query_params, headers=request.headers, request=request)


# ------------------------
# Accessors
# ------------------------
def _get(container: Any, key: str) -> Optional[str]:
    if not isinstance(container, Mapping):
        return None
    value = container.get(key)
    return value or None


def _from_body(req: RequestLike, key: str) -> Optional[str]:
    return _get(getattr(req, "body", None), key)


def _from_query(req: RequestLike, key: str) -> Optional[str]:
    return _get(getattr(req, "query", None), key)


def _from_headers(req: RequestLike, key: str) -> Optional[str]:
    return _get(getattr(req, "headers", None), key)


Accessor = Callable[[RequestLike, str], Optional[str]]

# body and query are the documented places; headers are a fallback transport
LOOKUP_ORDER: Tuple[Tuple[str, Accessor], ...] = (
    ("body", _from_body),
    ("query", _from_query),
    ("headers", _from_headers),
)


def lookup(req: RequestLike, key: str) -> Optional[str]:
    """
    Return the first truthy value of `key` in body, query, headers (in that order).
    No format validation: whatever is found goes to the verifier as-is.
    """
    for where, accessor in LOOKUP_ORDER:
        value = accessor(req, key)
        if value:
            auth_trace("locator.found", field=key, where=where)
            return value
    auth_trace("locator.missing", field=key)
    return None
