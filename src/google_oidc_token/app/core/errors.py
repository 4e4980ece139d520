# src/google_oidc_token/app/core/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class AuthError(Exception):
    """Base class for every failure raised while authenticating an ID token."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AuthError):
    """Strategy or verifier misconfigured (e.g. no client id)."""


# --- token was looked at and rejected ---------------------------------------

class TokenVerificationError(AuthError):
    """The token did not pass verification."""


class InvalidIdToken(TokenVerificationError):
    pass


class ExpiredIdToken(TokenVerificationError):
    pass


class AudienceMismatch(TokenVerificationError):
    pass


class IssuerMismatch(TokenVerificationError):
    pass


class MissingPayloadError(TokenVerificationError):
    """Verification returned without a usable claims payload."""


# --- could not decide --------------------------------------------------------

class CertificateFetchError(AuthError):
    """Google's signing certificates could not be retrieved."""


class VerificationTimeout(AuthError):
    pass
