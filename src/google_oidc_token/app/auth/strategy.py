# src/google_oidc_token/app/auth/strategy.py
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Optional, Union, overload

from google_oidc_token.app.auth.google import GoogleIdTokenVerifier, IdTokenVerifier
from google_oidc_token.app.auth.locator import RequestLike, lookup
from google_oidc_token.app.core.errors import MissingPayloadError, VerificationTimeout
from google_oidc_token.app.core.trace import auth_trace, mask
from google_oidc_token.app.models import (
    Error,
    Fail,
    Info,
    Outcome,
    OutcomeHandlers,
    StrategyOptions,
    StrategyOptionsWithRequest,
    Success,
    VerifyFunction,
    VerifyFunctionWithRequest,
)
from google_oidc_token.app.services.identity import parse_profile

_log = logging.getLogger(__name__)

# No OAuth code exchange happens in an ID-token-only flow, so there is
# nothing real to hand over. Callers must not treat these as credentials.
STAND_IN_ACCESS_TOKEN = "123"
STAND_IN_REFRESH_TOKEN = "234"


class GoogleOIDCTokenStrategy:
    """
    Authenticates a request carrying a Google ID token.

    The token is read from `id_token` in the body, query or headers, verified
    against Google's certificates, mapped to a Profile and passed to `verify`:

        async def verify(access_token, refresh_token, profile, done):
            user = await users.find_or_create(google_id=profile.id)
            done(None, user, None)

        strategy = GoogleOIDCTokenStrategy(StrategyOptions(client_id="123.apps.googleusercontent.com"), verify)
        outcome = await strategy.authenticate(request)

    With `pass_req_to_callback`, `verify` receives the request first. `done(err, user, info)`
    decides the outcome: err -> Error, no user -> Fail(info), otherwise Success(user, info).
    """

    name = "google-oidc-token"

    @overload
    def __init__(
        self,
        options: StrategyOptionsWithRequest,
        verify: VerifyFunctionWithRequest,
        *,
        verifier: Optional[IdTokenVerifier] = None,
    ) -> None: ...

    @overload
    def __init__(
        self,
        options: StrategyOptions,
        verify: VerifyFunction,
        *,
        verifier: Optional[IdTokenVerifier] = None,
    ) -> None: ...

    def __init__(self, options, verify, *, verifier=None):
        if not callable(verify):
            raise TypeError("GoogleOIDCTokenStrategy requires a verify callback")
        self.options: StrategyOptions = options
        self._verify: Union[VerifyFunction, VerifyFunctionWithRequest] = verify
        self._verifier: IdTokenVerifier = verifier or GoogleIdTokenVerifier()

    @classmethod
    def with_request(
        cls,
        client_id: str,
        verify: VerifyFunctionWithRequest,
        *,
        verifier: Optional[IdTokenVerifier] = None,
        **options: Any,
    ) -> "GoogleOIDCTokenStrategy":
        return cls(StrategyOptionsWithRequest(client_id=client_id, **options), verify, verifier=verifier)

    @property
    def client_id(self) -> str:
        return self.options.client_id

    @property
    def pass_req_to_callback(self) -> bool:
        return self.options.pass_req_to_callback

    # ------------------------
    # Pipeline
    # ------------------------
    async def authenticate(self, req: RequestLike, handlers: Optional[OutcomeHandlers] = None) -> Outcome:
        """
        Run one authentication attempt.
        Returns the Outcome and, when `handlers` is given, calls exactly one of its methods.

        Failures of the attempt itself (token, engine, verify callback) become an
        Error outcome and are never raised. Exceptions raised by `handlers` are
        host code and propagate to the caller unchanged.
        """
        try:
            outcome = await self._run(req)
        except Exception as ex:
            _log.exception("google-oidc-token: unexpected failure")
            outcome = Error(ex)

        auth_trace("strategy.outcome", kind=outcome.kind)
        if handlers is not None:
            _dispatch(outcome, handlers)
        return outcome

    async def _run(self, req: RequestLike) -> Outcome:
        id_token = lookup(req, self.options.token_field)
        auth_trace("strategy.verify.begin", token=mask(id_token), aud=self.client_id)

        try:
            claims = await asyncio.wait_for(
                self._verifier.verify(id_token, audience=self.client_id),
                timeout=self.options.timeout,
            )
        except asyncio.TimeoutError:
            auth_trace("strategy.verify.timeout", timeout=self.options.timeout)
            return Error(VerificationTimeout(f"id_token verification timed out after {self.options.timeout}s"))
        except Exception as ex:
            auth_trace("strategy.verify.fail", err=type(ex).__name__)
            return Error(ex)

        if not claims:
            return Error(MissingPayloadError("No payload returned"))

        profile = parse_profile(claims)
        return await self._call_verify(req, profile)

    async def _call_verify(self, req: RequestLike, profile) -> Outcome:
        loop = asyncio.get_running_loop()
        settled: asyncio.Future = loop.create_future()

        def done(error: Optional[BaseException] = None, user: Any = None, info: Optional[Info] = None) -> None:
            if settled.done():
                _log.warning("google-oidc-token: done() called more than once; ignoring")
                return
            if error:
                settled.set_result(Error(error))
            elif not user:
                settled.set_result(Fail(info))
            else:
                settled.set_result(Success(user, info))

        args = (STAND_IN_ACCESS_TOKEN, STAND_IN_REFRESH_TOKEN, profile, done)
        if self.pass_req_to_callback:
            # hand over the host request when the locator was given a snapshot
            args = (getattr(req, "request", None) or req,) + args

        try:
            result = self._verify(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            if not settled.done():
                raise
            # the outcome was already reported through done()
            _log.warning("google-oidc-token: verify raised after done(); keeping the reported outcome", exc_info=True)

        if not settled.done():
            # verify may settle later from another task
            try:
                return await asyncio.wait_for(asyncio.shield(settled), timeout=self.options.timeout)
            except asyncio.TimeoutError:
                return Error(VerificationTimeout("verify callback never called done()"))
        return settled.result()


def _dispatch(outcome: Outcome, handlers: OutcomeHandlers) -> None:
    if isinstance(outcome, Success):
        handlers.success(outcome.user, outcome.info)
    elif isinstance(outcome, Fail):
        handlers.fail(outcome.info)
    else:
        handlers.error(outcome.cause)
