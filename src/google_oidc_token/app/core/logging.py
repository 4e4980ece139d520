# src/google_oidc_token/app/core/logging.py
from __future__ import annotations
import logging
import os

from google_oidc_token.app.core.trace import trace_enabled

PACKAGE_LOGGER = "google_oidc_token"
TRACE_LOGGER = "google_oidc_token.auth"

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s %(message)s"


def level_from_env(var: str = "LOG_LEVEL", default: str = "INFO") -> int:
    """Level named by `var` (DEBUG, INFO, ...); unknown names fall back to `default`."""
    name = (os.getenv(var) or default).strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.getLevelName(default)


def setup_logging() -> None:
    """
    Configure logging once. Safe to call repeatedly.

      LOG_LEVEL         root verbosity (default INFO)
      OIDC_LOG_LEVEL    verbosity of google_oidc_token.* (default: LOG_LEVEL)
      AUTH_TRACE        keeps google_oidc_token.auth at INFO so trace lines are
                        emitted even when the rest of the app is quieter
    """
    root = logging.getLogger()
    root_level = level_from_env("LOG_LEVEL", "INFO")
    root.setLevel(root_level)
    if not root.handlers:
        # host (pytest, uvicorn) may already own the handlers
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
        root.addHandler(handler)

    pkg_level = level_from_env("OIDC_LOG_LEVEL", logging.getLevelName(root_level))
    logging.getLogger(PACKAGE_LOGGER).setLevel(pkg_level)

    trace = logging.getLogger(TRACE_LOGGER)
    trace.setLevel(min(pkg_level, logging.INFO) if trace_enabled() else logging.NOTSET)
