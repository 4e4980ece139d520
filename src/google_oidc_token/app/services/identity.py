# Maps verified Google ID-token claims -> the normalized Profile.
from __future__ import annotations

from typing import Any, Mapping, Optional

from google_oidc_token.app.models import Profile, ProfileEmail, ProfileName, ProfilePhoto


def _as_bool(value: Any) -> bool:
    # older Google tokens carry email_verified as the string "true"
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _text(value: Any) -> Optional[str]:
    # claims come from an injectable engine; only strings and numbers carry text
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value or None
    return None


def parse_profile(claims: Mapping[str, Any]) -> Profile:
    """
    Build a Profile from verified claims. Never raises: missing, empty or
    non-text optional claims are left out.

    The amount of detail depends on the scopes granted by the user:
      - `profile` adds name, given_name, family_name, picture
      - `email`   adds email, email_verified

    See https://developers.google.com/identity/openid-connect/openid-connect
    """
    profile = Profile(
        id=_text(claims.get("sub")) or "",
        display_name=_text(claims.get("name")) or "",
        json_=dict(claims),
    )

    family = _text(claims.get("family_name"))
    given = _text(claims.get("given_name"))
    if family or given:
        profile.name = ProfileName(family_name=family, given_name=given)

    email = _text(claims.get("email"))
    if email:
        profile.emails = [ProfileEmail(value=email, verified=_as_bool(claims.get("email_verified")))]

    picture = _text(claims.get("picture"))
    if picture:
        profile.photos = [ProfilePhoto(value=picture)]

    return profile
