# src/google_oidc_token/app/core/config.py
from __future__ import annotations

import os
from typing import Tuple

# ------------------------
# Environment & constants
# ------------------------
GOOGLE_ISS: str       = os.getenv("GOOGLE_ISS", "https://accounts.google.com")
GOOGLE_JWKS_URI: str  = os.getenv("GOOGLE_JWKS_URI", "https://www.googleapis.com/oauth2/v3/certs")
GOOGLE_DISCOVERY: str = os.getenv("GOOGLE_DISCOVERY", "https://accounts.google.com/.well-known/openid-configuration")

# Google signs with either form of the issuer
GOOGLE_ISSUERS: Tuple[str, ...] = tuple(dict.fromkeys(
    (GOOGLE_ISS, "https://accounts.google.com", "accounts.google.com")
))

OIDC_VERIFY_TIMEOUT_SEC: float = float(os.getenv("OIDC_VERIFY_TIMEOUT_SEC", "10"))
OIDC_LEEWAY_SEC: int           = int(os.getenv("OIDC_LEEWAY_SEC", "120"))
JWKS_LIFESPAN_SEC: float       = float(os.getenv("JWKS_LIFESPAN_SEC", "300"))  # how long PyJWKClient keeps the key set

ID_TOKEN_FIELD = "id_token"

_TRUE = ("1", "true", "yes", "on")


def env_flag(name: str, default: str = "") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in _TRUE


def google_audience() -> str:
    """GOOGLE_AUDIENCE wins over GOOGLE_CLIENT_ID; both are the OAuth client id."""
    return (os.getenv("GOOGLE_AUDIENCE") or os.getenv("GOOGLE_CLIENT_ID") or "").strip()


def options_from_env():
    """
    Build strategy options from the environment.

      GOOGLE_AUDIENCE / GOOGLE_CLIENT_ID   audience the token must be issued for
      OIDC_PASS_REQ_TO_CALLBACK            forward the request to the verify function
      OIDC_VERIFY_TIMEOUT_SEC              bound on the verification call
    """
    from google_oidc_token.app.core.errors import ConfigurationError
    from google_oidc_token.app.models import StrategyOptions, StrategyOptionsWithRequest

    client_id = google_audience()
    if not client_id:
        raise ConfigurationError("server misconfigured: GOOGLE_AUDIENCE/GOOGLE_CLIENT_ID missing")

    timeout = float(os.getenv("OIDC_VERIFY_TIMEOUT_SEC", str(OIDC_VERIFY_TIMEOUT_SEC)))
    if env_flag("OIDC_PASS_REQ_TO_CALLBACK"):
        return StrategyOptionsWithRequest(client_id=client_id, timeout=timeout)
    return StrategyOptions(client_id=client_id, timeout=timeout)
