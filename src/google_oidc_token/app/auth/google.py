# src/google_oidc_token/app/auth/google.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx
import jwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientConnectionError, PyJWKClientError, PyJWKSetError

from google_oidc_token.app.core.config import (
    GOOGLE_DISCOVERY,
    GOOGLE_ISSUERS,
    GOOGLE_JWKS_URI,
    JWKS_LIFESPAN_SEC,
    OIDC_LEEWAY_SEC,
)
from google_oidc_token.app.core.errors import (
    AudienceMismatch,
    CertificateFetchError,
    ExpiredIdToken,
    InvalidIdToken,
    IssuerMismatch,
)
from google_oidc_token.app.core.trace import auth_trace

ALGORITHMS = ("RS256",)
REQUIRED_CLAIMS = ["exp", "iat", "aud", "iss", "sub"]


class IdTokenVerifier(Protocol):
    """Anything that can turn a raw ID token into verified claims."""

    async def verify(self, id_token: str, *, audience: str | Sequence[str]) -> Optional[Dict[str, Any]]: ...


async def discover(url: str = GOOGLE_DISCOVERY, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Fetch Google's OpenID configuration document."""
    own = client or httpx.AsyncClient(timeout=10)
    try:
        r = await own.get(url)
        r.raise_for_status()
        doc = r.json()
    except (httpx.HTTPError, ValueError) as ex:
        auth_trace("google.discovery.failed", url=url, err=str(ex))
        raise CertificateFetchError(f"could not load google discovery document: {ex}", details={"url": url}) from ex
    finally:
        if client is None:
            await own.aclose()

    if not isinstance(doc, dict) or not doc.get("jwks_uri"):
        raise CertificateFetchError("google discovery document has no jwks_uri", details={"url": url})
    return doc


class GoogleIdTokenVerifier:
    """
    Verifies Google ID tokens (RS256) against Google's published certificates.

    Keys come from PyJWKClient, which caches the JWK set for `lifespan` seconds
    and refetches once when a token names a `kid` it has not seen (key rotation).
    The client does blocking I/O, so it runs in a worker thread.
    """

    def __init__(
        self,
        jwks_uri: str = GOOGLE_JWKS_URI,
        issuers: Sequence[str] = GOOGLE_ISSUERS,
        leeway: int = OIDC_LEEWAY_SEC,
        lifespan: float = JWKS_LIFESPAN_SEC,
        fetch_timeout: int = 10,
    ):
        self.jwks_uri = jwks_uri
        self.issuers = tuple(issuers)
        self.leeway = leeway
        self._jwk = PyJWKClient(jwks_uri, cache_jwk_set=True, lifespan=lifespan, timeout=fetch_timeout)

    @classmethod
    async def from_discovery(
        cls,
        url: str = GOOGLE_DISCOVERY,
        *,
        client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ) -> "GoogleIdTokenVerifier":
        """Build a verifier from the jwks_uri (and issuer) Google advertises."""
        doc = await discover(url, client=client)
        issuers = kwargs.pop("issuers", GOOGLE_ISSUERS)
        if doc.get("issuer"):
            issuers = tuple(dict.fromkeys((doc["issuer"], *issuers)))
        auth_trace("google.discovery.ok", jwks_uri=doc["jwks_uri"])
        return cls(jwks_uri=doc["jwks_uri"], issuers=issuers, **kwargs)

    async def _signing_key(self, id_token: str, kid: Optional[str]) -> Any:
        if not kid:
            raise InvalidIdToken("invalid google id_token: missing kid")
        try:
            signing_key = await asyncio.to_thread(self._jwk.get_signing_key_from_jwt, id_token)
        except PyJWKClientConnectionError as ex:
            auth_trace("google.certs.fetch_failed", uri=self.jwks_uri, err=str(ex))
            raise CertificateFetchError(
                f"could not fetch google certificates: {ex}",
                details={"uri": self.jwks_uri},
            ) from ex
        except (PyJWKSetError, ValueError) as ex:
            auth_trace("google.certs.bad_payload", uri=self.jwks_uri, err=str(ex))
            raise CertificateFetchError(
                f"unusable google certificates payload: {ex}",
                details={"uri": self.jwks_uri},
            ) from ex
        except PyJWKClientError as ex:
            auth_trace("google.certs.unknown_kid", kid=kid)
            raise InvalidIdToken(f"invalid google id_token: no certificate for kid={kid}") from ex
        return signing_key.key

    async def verify(self, id_token: str, *, audience: str | Sequence[str]) -> Dict[str, Any]:
        """
        Verify a raw Google ID token.
        Validates signature, aud, iss and the standard time claims; returns the claims.
        """
        if not id_token or not isinstance(id_token, str):
            raise InvalidIdToken("invalid google id_token: no token supplied")

        aud = audience if isinstance(audience, str) else list(audience)

        try:
            hdr = jwt.get_unverified_header(id_token)
        except jwt.PyJWTError as ex:
            raise InvalidIdToken(f"invalid google id_token: {ex}") from ex
        if hdr.get("alg") not in ALGORITHMS:
            raise InvalidIdToken(f"invalid google id_token: unexpected alg: {hdr.get('alg')}")

        key = await self._signing_key(id_token, hdr.get("kid"))

        try:
            claims = jwt.decode(
                id_token,
                key=key,
                algorithms=list(ALGORITHMS),
                audience=aud,
                options={"require": REQUIRED_CLAIMS},
                leeway=self.leeway,
            )
        except jwt.ExpiredSignatureError as ex:
            auth_trace("google.verify.expired")
            raise ExpiredIdToken("invalid google id_token: exp (expired)") from ex
        except jwt.InvalidAudienceError as ex:
            auth_trace("google.verify.aud_mismatch", want_aud=aud)
            raise AudienceMismatch(
                f"invalid google id_token: audience mismatch (want={aud})",
                details={"audience": aud},
            ) from ex
        except jwt.PyJWTError as ex:
            auth_trace("google.verify.jwt_error", err=str(ex))
            raise InvalidIdToken(f"invalid google id_token: {ex}") from ex

        iss = claims.get("iss")
        if iss not in self.issuers:
            auth_trace("google.verify.iss_mismatch", iss=iss)
            raise IssuerMismatch(
                f"invalid google id_token: issuer mismatch (got={iss})",
                details={"issuers": list(self.issuers)},
            )

        auth_trace("google.verify.ok", sub=claims.get("sub"), aud=claims.get("aud"), exp=claims.get("exp"))
        return claims
