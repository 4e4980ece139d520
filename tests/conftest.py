# tests/conftest.py
from __future__ import annotations

import asyncio
import io
import json
import os
import time
import urllib.request
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

# ---------- Paths & .env ----------
ROOT = Path(__file__).resolve().parents[1]  # repo root
# Optional: load .env from repo root for local runs (CI may inject env separately)
try:
    from dotenv import load_dotenv  # type: ignore
    env_path = ROOT / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=True)
except ImportError:
    pass

from google_oidc_token.app.auth.google import GoogleIdTokenVerifier  # noqa: E402

# ---------- Constants for the mocked Google ----------
CLIENT_ID = "dummy-client.apps.googleusercontent.com"
CERTS_URL = "https://www.googleapis.com/oauth2/v3/certs"
ISSUER = "https://accounts.google.com"
KID = "mock-kid-1"

# Live Google env (opt-in only)
GOOGLE_AUDIENCE   = (os.getenv("GOOGLE_AUDIENCE") or os.getenv("GOOGLE_CLIENT_ID") or "").strip()
GOOGLE_TEST_IDTOK = os.getenv("GOOGLE_TEST_ID_TOKEN")
ENABLE_GOOGLE_TESTS = (os.getenv("ENABLE_GOOGLE_TESTS", "")).lower() in ("1", "true", "yes", "on")

# ---------- Pytest controls ----------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--enable-google-tests",
        action="store_true",
        default=False,
        help="Run tests marked with @pytest.mark.google against real Google (otherwise auto-skip).",
    )

def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "google: tests that require a real Google ID token")

def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    """Gate @google tests unless explicitly enabled."""
    if config.getoption("--enable-google-tests") or ENABLE_GOOGLE_TESTS:
        return
    skip_google = pytest.mark.skip(
        reason=("Skipping @google tests. Enable with --enable-google-tests or set "
                "ENABLE_GOOGLE_TESTS=true. Requires GOOGLE_AUDIENCE/GOOGLE_CLIENT_ID "
                "and GOOGLE_TEST_ID_TOKEN.")
    )
    for item in items:
        if "google" in item.keywords:
            item.add_marker(skip_google)

# ---------- Keys & tokens ----------
def _jwk(private_key: rsa.RSAPrivateKey, kid: str) -> Dict[str, Any]:
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return jwk

@pytest.fixture(scope="session")
def signing_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)

@pytest.fixture(scope="session")
def rogue_key() -> rsa.RSAPrivateKey:
    """A key Google never published."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)

@pytest.fixture(scope="session")
def jwks(signing_key) -> Dict[str, Any]:
    return {"keys": [_jwk(signing_key, KID)]}

@pytest.fixture(scope="session")
def jwk_for() -> Callable[[rsa.RSAPrivateKey, str], Dict[str, Any]]:
    return _jwk

def base_claims(**overrides: Any) -> Dict[str, Any]:
    now = int(time.time())
    claims: Dict[str, Any] = {
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "sub": "1234567890",
        "email": "tester@example.com",
        "email_verified": True,
        "name": "Test User",
        "given_name": "Test",
        "family_name": "User",
        "picture": "https://lh3.googleusercontent.com/a/photo.jpg",
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return claims

@pytest.fixture
def make_token(signing_key) -> Callable[..., str]:
    """
    Mint an RS256 ID token signed like Google would.
      make_token(aud="other")            override claims
      make_token(drop=("sub",))          remove claims
      make_token(key=rogue_key)          sign with another key
    """
    def _make(
        *,
        key: Optional[rsa.RSAPrivateKey] = None,
        kid: Optional[str] = KID,
        drop: Iterable[str] = (),
        **overrides: Any,
    ) -> str:
        claims = base_claims(**overrides)
        for name in drop:
            claims.pop(name, None)
        headers = {"kid": kid} if kid else {}
        return jwt.encode(claims, key or signing_key, algorithm="RS256", headers=headers)
    return _make

class FakeCertsEndpoint:
    """
    Plays Google's certs endpoint for PyJWKClient, which fetches with urllib.
    Queued answers are served in order; the last one repeats.
    """

    def __init__(self):
        self.answers: List[Any] = []
        self.requests: List[str] = []

    def add_response(self, payload: Any) -> None:
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        self.answers.append(body)

    def add_exception(self, exc: BaseException) -> None:
        self.answers.append(exc)

    def __call__(self, req, *args, **kwargs):
        url = getattr(req, "full_url", req)
        self.requests.append(url)
        assert url == CERTS_URL, f"unexpected fetch: {url}"
        assert self.answers, "certs endpoint was not expected to be called"
        answer = self.answers.pop(0) if len(self.answers) > 1 else self.answers[0]
        if isinstance(answer, BaseException):
            raise answer
        return io.BytesIO(answer)

@pytest.fixture
def certs_endpoint(monkeypatch) -> FakeCertsEndpoint:
    endpoint = FakeCertsEndpoint()
    monkeypatch.setattr(urllib.request, "urlopen", endpoint)
    return endpoint

@pytest.fixture
def certs(certs_endpoint, jwks) -> FakeCertsEndpoint:
    """Google certs endpoint serving the published key set."""
    certs_endpoint.add_response(jwks)
    return certs_endpoint

@pytest.fixture
def verifier() -> GoogleIdTokenVerifier:
    return GoogleIdTokenVerifier(jwks_uri=CERTS_URL, leeway=0)

# ---------- Strategy helpers ----------
class StubVerifier:
    """Stands in for the verification engine: returns fixed claims or raises."""

    def __init__(self, claims: Optional[Dict[str, Any]] = None, exc: Optional[BaseException] = None,
                 delay: float = 0.0):
        self.claims = claims
        self.exc = exc
        self.delay = delay
        self.calls: List[Tuple[Any, Any]] = []

    async def verify(self, id_token, *, audience):
        self.calls.append((id_token, audience))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.claims

class RecordingHandlers:
    """Records every outcome-handler invocation."""

    def __init__(self):
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def success(self, user, info):
        self.calls.append(("success", (user, info)))

    def fail(self, info):
        self.calls.append(("fail", (info,)))

    def error(self, err):
        self.calls.append(("error", (err,)))

    @property
    def kinds(self) -> List[str]:
        return [k for k, _ in self.calls]

@pytest.fixture
def stub_verifier() -> Callable[..., StubVerifier]:
    return StubVerifier

@pytest.fixture
def handlers() -> RecordingHandlers:
    return RecordingHandlers()

@pytest.fixture
def claims() -> Dict[str, Any]:
    return base_claims()
