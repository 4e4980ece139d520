# src/google_oidc_token/app/main.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI

# Load .env before any config is read
load_dotenv()

from google_oidc_token.app.core.logging import setup_logging  # noqa: E402
setup_logging()

from google_oidc_token.app.auth.strategy import GoogleOIDCTokenStrategy  # noqa: E402
from google_oidc_token.app.core.config import env_flag, options_from_env  # noqa: E402
from google_oidc_token.app.core.errors import ConfigurationError  # noqa: E402
from google_oidc_token.app.models import Success  # noqa: E402
from google_oidc_token.app.security.deps import google_id_token_required, google_id_token_success  # noqa: E402
from google_oidc_token.app.services.users import UserStore  # noqa: E402

_log = logging.getLogger(__name__)


def auth_router(strategy: GoogleOIDCTokenStrategy) -> APIRouter:
    router = APIRouter(tags=["auth"])
    authenticated = google_id_token_required(strategy)
    authenticated_outcome = google_id_token_success(strategy)

    @router.post("/auth/google/token")
    def google_token(outcome: Success = Depends(authenticated_outcome)):
        """
        Accepts `id_token` in a JSON/form body, query string or header and
        returns the local user it maps to, plus the Google profile when the
        verify callback reported one.
        """
        return {"ok": True, "user": outcome.user, "profile": (outcome.info or {}).get("profile")}

    @router.get("/auth/me")
    def auth_me(user: Dict[str, Any] = Depends(authenticated)):
        return user

    return router


def create_app(strategy: Optional[GoogleOIDCTokenStrategy] = None) -> FastAPI:
    app = FastAPI(title="Google OIDC token auth", version="0.1.0")

    @app.get("/healthz")
    def health():
        return {"status": "ok"}

    if strategy is None:
        try:
            users = UserStore(require_verified_email=env_flag("REQUIRE_VERIFIED_EMAIL"))
            options = options_from_env()
            if options.pass_req_to_callback:
                strategy = GoogleOIDCTokenStrategy(options, lambda _req, *args: users.verify(*args))
            else:
                strategy = GoogleOIDCTokenStrategy(options, users.verify)
        except ConfigurationError as ex:
            _log.warning("[main] Skipping google auth routes: %s", ex)
            return app

    app.include_router(auth_router(strategy))
    return app


app = create_app()
