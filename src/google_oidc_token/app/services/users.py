# Maps a verified Google profile -> a local user. JIT-provisions on first sight.
from __future__ import annotations

from typing import Any, Dict, Optional

from google_oidc_token.app.core.trace import auth_trace
from google_oidc_token.app.models import DoneCallback, Profile


class UserStore:
    """
    In-memory user table keyed by "google:<sub>" (good enough for tests/dev).
    `verify` has the strategy's callback shape and can be passed to it directly.
    """

    def __init__(self, require_verified_email: bool = False):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.require_verified_email = require_verified_email

    def find_or_create(self, profile: Profile) -> Dict[str, Any]:
        user_id = f"{profile.provider}:{profile.id}"
        email: Optional[str] = profile.emails[0].value if profile.emails else None

        user = self.users.get(user_id)
        if user is None:
            user = {"id": user_id, "email": email, "display_name": profile.display_name}
            self.users[user_id] = user
            auth_trace("users.created", id=user_id)
        elif email:
            # optional profile refresh
            user["email"] = email
        return user

    def verify(self, access_token: str, refresh_token: str, profile: Profile, done: DoneCallback) -> None:
        if self.require_verified_email and not any(e.verified for e in profile.emails):
            return done(None, False, {"message": "email not verified"})
        return done(None, self.find_or_create(profile), {"profile": profile.model_dump(by_alias=True)})
