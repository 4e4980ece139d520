# src/google_oidc_token/app/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Protocol, TypedDict, Union

from pydantic import BaseModel, ConfigDict, Field

from google_oidc_token.app.core.config import ID_TOKEN_FIELD, OIDC_VERIFY_TIMEOUT_SEC

# ------------------------
# Strategy configuration
# ------------------------
class StrategyOptions(BaseModel):
    """Set once at construction; read-only afterwards."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: str = Field(..., alias="clientID", min_length=1)
    pass_req_to_callback: bool = Field(False, alias="passReqToCallback")
    timeout: float = Field(OIDC_VERIFY_TIMEOUT_SEC, gt=0)  # seconds, bounds the verification call
    token_field: str = ID_TOKEN_FIELD

class StrategyOptionsWithRequest(StrategyOptions):
    pass_req_to_callback: Literal[True] = Field(True, alias="passReqToCallback")

# ------------------------
# Normalized profile
# ------------------------
class ProfileName(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    family_name: Optional[str] = Field(None, alias="familyName")
    given_name: Optional[str] = Field(None, alias="givenName")

class ProfileEmail(BaseModel):
    value: str
    verified: bool = False

class ProfilePhoto(BaseModel):
    value: str

class Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: Literal["google"] = "google"
    id: str
    display_name: str = Field("", alias="displayName")
    name: Optional[ProfileName] = None
    emails: List[ProfileEmail] = Field(default_factory=list)
    photos: List[ProfilePhoto] = Field(default_factory=list)
    json_: Dict[str, Any] = Field(default_factory=dict, alias="_json")  # raw verified claims

# ------------------------
# Outcomes
# ------------------------
class Info(TypedDict, total=False):
    message: str
    profile: Dict[str, Any]  # by-alias dump of the Profile the user was resolved from

@dataclass(frozen=True)
class Success:
    user: Any
    info: Optional[Info] = None
    kind: Literal["success"] = field(default="success", init=False)

@dataclass(frozen=True)
class Fail:
    info: Optional[Info] = None
    kind: Literal["fail"] = field(default="fail", init=False)

@dataclass(frozen=True)
class Error:
    cause: BaseException
    kind: Literal["error"] = field(default="error", init=False)

Outcome = Union[Success, Fail, Error]

class OutcomeHandlers(Protocol):
    """Host-side receiver; exactly one method is called per authentication attempt."""

    def success(self, user: Any, info: Optional[Info]) -> None: ...

    def fail(self, info: Optional[Info]) -> None: ...

    def error(self, err: BaseException) -> None: ...

# ------------------------
# Verify callback shapes
# ------------------------
DoneCallback = Callable[[Optional[BaseException], Any, Optional[Info]], None]

# may be sync or a coroutine function
VerifyFunction = Callable[[str, str, Profile, DoneCallback], Optional[Awaitable[None]]]
VerifyFunctionWithRequest = Callable[[Any, str, str, Profile, DoneCallback], Optional[Awaitable[None]]]
