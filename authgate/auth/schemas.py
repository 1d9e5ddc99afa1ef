from __future__ import annotations

from pydantic import BaseModel

from authgate.models.user import Provider


class TokenData(BaseModel):
    user_id: str


class ResolvedIdentity(BaseModel):
    """What a provider credential resolves to before touching the database."""

    provider: Provider
    external_id: str
    email: str | None = None
    name: str | None = None
    avatar_url: str | None = None


# ---------------------------------------------------------------------------
# Request / response bodies
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    # Plain strings so an unknown provider is a 400 from the handler, not a 422
    provider: str | None = None
    access_token: str | None = None
    id_token: str | None = None
    email: str | None = None
    name: str | None = None


class LoginRequest(BaseModel):
    provider: str | None = None
    access_token: str | None = None
    id_token: str | None = None
    guest_user_id: str | None = None


class AccountData(BaseModel):
    user_id: str
    provider: Provider
    email: str | None
    name: str | None
    profile_image_url: str | None
    token: str
    # Left unset (and omitted from responses) for non-guest accounts
    guest_user_id: str | None = None
