# src/google_oidc_token/app/core/trace.py
from __future__ import annotations
import logging
import os
import time
from typing import Any, Mapping, Optional

_log = logging.getLogger("google_oidc_token.auth")

def trace_enabled() -> bool:
    # read per call so tests can flip AUTH_TRACE with monkeypatch
    return (os.getenv("AUTH_TRACE", "")).lower() in ("1", "true", "yes", "on")

def mask(tok: Optional[str], keep: int = 12) -> str:
    if not tok:
        return "<none>"
    return str(tok)[:keep] + "...(masked)..."

def _fmt_kv(d: Mapping[str, Any]) -> str:
    return " ".join(f"{k}={d[k]}" for k in d)

def auth_trace(event: str, **kv: Any) -> None:
    """
    Emit a single-line structured log ONLY when AUTH_TRACE=true.
    Example:
      [auth] strategy.verify.ok ts=... sub=1234 aud=abc.apps.googleusercontent.com
    """
    if not trace_enabled():
        return
    kv2 = {"ts": int(time.time()), **kv}
    _log.info("[auth] %s %s", event, _fmt_kv(kv2))
