"""
API request and response models for the Gatehouse REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py and
auth/models.py, which own the internal representation. Route handlers map
between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import User

# ---------------------------------------------------------------------------
# Auth responses
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    """Response for POST /api/v1/auth/login. The session cookie carries the login."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    role: str


class TokenResponse(BaseModel):
    """Response for POST /api/v1/auth/token."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    username: str
    role: str


class MeResponse(BaseModel):
    """Identity of the authenticated principal.

    auth_method is "session" for cookie logins and "token" for bearer requests.
    """

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    role: str
    auth_method: str
    last_login: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, auth_method: str) -> "MeResponse":
        return cls(
            user_id=user.id,
            username=user.username,
            role=user.role,
            auth_method=auth_method,
            last_login=user.last_login,
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
