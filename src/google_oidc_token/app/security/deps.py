# src/google_oidc_token/app/security/deps.py
from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request, status

from google_oidc_token.app.auth.locator import request_data
from google_oidc_token.app.auth.strategy import GoogleOIDCTokenStrategy
from google_oidc_token.app.core.errors import (
    CertificateFetchError,
    TokenVerificationError,
    VerificationTimeout,
)
from google_oidc_token.app.core.trace import auth_trace
from google_oidc_token.app.models import Error, Fail, Success


def _status_for(cause: BaseException) -> int:
    if isinstance(cause, TokenVerificationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(cause, (CertificateFetchError, VerificationTimeout)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def google_id_token_success(strategy: GoogleOIDCTokenStrategy):
    """
    FastAPI dependency factory. The dependency returns the Success outcome
    (user and info handed to done()) or raises:

      - Fail                          -> 401 with the info message
      - Error(invalid/expired token)  -> 401
      - Error(certs down / timeout)   -> 503
      - any other Error               -> 500
    """
    async def dep(request: Request) -> Success:
        outcome = await strategy.authenticate(await request_data(request))

        if isinstance(outcome, Fail):
            message = (outcome.info or {}).get("message") or "unauthorized"
            auth_trace("deps.fail", message=message)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)

        if isinstance(outcome, Error):
            code = _status_for(outcome.cause)
            cause = outcome.cause
            if code == status.HTTP_401_UNAUTHORIZED:
                detail = str(cause)
            elif code == status.HTTP_503_SERVICE_UNAVAILABLE:
                detail = "authentication unavailable"
            else:
                detail = "authentication error"
            auth_trace("deps.error", code=code, err=type(cause).__name__)
            raise HTTPException(status_code=code, detail=detail)

        return outcome

    return dep


def google_id_token_required(strategy: GoogleOIDCTokenStrategy):
    """
    Same checks as google_id_token_success; the dependency returns only the user.

    Example:
      @router.get("/me")
      def me(user = Depends(google_id_token_required(strategy))):
          ...
    """
    success = google_id_token_success(strategy)

    async def dep(outcome: Success = Depends(success)) -> Any:
        return outcome.user

    return dep
