import asyncio

import pytest

from conftest import GOOGLE_AUDIENCE, GOOGLE_TEST_IDTOK
from google_oidc_token.app.auth.google import GoogleIdTokenVerifier
from google_oidc_token.app.services.identity import parse_profile

# Mark: gated by --enable-google-tests or ENABLE_GOOGLE_TESTS=true
pytestmark = pytest.mark.google


def test_real_google_id_token_verifies():
    """
    Live check against Google's real certificates.
    Requires GOOGLE_AUDIENCE (or GOOGLE_CLIENT_ID) and a fresh GOOGLE_TEST_ID_TOKEN.
    """
    if not (GOOGLE_AUDIENCE and GOOGLE_TEST_IDTOK):
        pytest.skip("GOOGLE_AUDIENCE/GOOGLE_TEST_ID_TOKEN not set; skipping live Google test")

    claims = asyncio.run(GoogleIdTokenVerifier().verify(GOOGLE_TEST_IDTOK, audience=GOOGLE_AUDIENCE))
    profile = parse_profile(claims)

    assert profile.id
    assert profile.json_["aud"] == GOOGLE_AUDIENCE
