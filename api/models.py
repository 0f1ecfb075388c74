"""
API request and response models for the unidir REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format: field names are camelCase on the wire (alias_generator=to_camel)
and snake_case in Python. populate_by_name lets tests and handlers build the
models with either spelling.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import AccountProfile, LoginResult, TokenPair
from core.models import AccountStatus, Campus, Role

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
PASSWORD_MIN_LENGTH = 8
# bcrypt only hashes the first 72 bytes; the cap keeps plaintexts well inside it.
PASSWORD_MAX_LENGTH = 35


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class LoginRequest(_WireModel):
    """Request body for POST /api/v1/auth/login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)


class RefreshRequest(_WireModel):
    """Request body for POST /api/v1/auth/refresh."""

    refresh_token: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class TokenResponse(_WireModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "Bearer"

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
            token_type=pair.token_type,
        )


class AccountResponse(_WireModel):
    """Sanitized account as returned by every endpoint. Never carries a password."""

    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    username: str
    first_name: str
    last_name: str
    role: Role
    status: AccountStatus
    campus: Campus
    deleted: bool
    department: Optional[str] = None
    department_id: Optional[str] = None
    vice_president_id: Optional[str] = None
    vice_president_name: Optional[str] = None
    director_id: Optional[str] = None
    director_name: Optional[str] = None
    office_head_id: Optional[str] = None
    office_head_name: Optional[str] = None
    profile_pic: str
    created_at: str
    updated_at: str
    last_login_at: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: AccountProfile) -> "AccountResponse":
        """Build an AccountResponse from a domain AccountProfile.

        The mapping lives here, colocated with the output model, rather than
        scattered across route handlers.
        """
        return cls(
            id=profile.id,
            email=profile.email,
            username=profile.username,
            first_name=profile.first_name,
            last_name=profile.last_name,
            role=profile.role,
            status=profile.status,
            campus=profile.campus,
            deleted=profile.deleted,
            department=profile.department,
            department_id=profile.department_id,
            vice_president_id=profile.vice_president_id,
            vice_president_name=profile.vice_president_name,
            director_id=profile.director_id,
            director_name=profile.director_name,
            office_head_id=profile.office_head_id,
            office_head_name=profile.office_head_name,
            profile_pic=profile.profile_pic,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
            last_login_at=profile.last_login_at,
        )


class LoginResponse(_WireModel):
    model_config = ConfigDict(frozen=True)

    tokens: TokenResponse
    user: AccountResponse

    @classmethod
    def from_result(cls, result: LoginResult) -> "LoginResponse":
        return cls(
            tokens=TokenResponse.from_pair(result.tokens),
            user=AccountResponse.from_profile(result.user),
        )


# ---------------------------------------------------------------------------
# Users -- request models
# ---------------------------------------------------------------------------


class UserCreate(_WireModel):
    """Request body for POST /api/v1/users."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    username: str = Field(min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)
    campus: Campus
    role: Role = Role.OFFICE_HEAD
    status: AccountStatus = AccountStatus.PENDING
    department: Optional[str] = Field(default=None, max_length=255)
    department_id: Optional[str] = Field(default=None, max_length=100)
    vice_president_id: Optional[str] = Field(default=None, max_length=100)
    vice_president_name: Optional[str] = Field(default=None, max_length=255)
    director_id: Optional[str] = Field(default=None, max_length=100)
    director_name: Optional[str] = Field(default=None, max_length=255)
    office_head_id: Optional[str] = Field(default=None, max_length=100)
    office_head_name: Optional[str] = Field(default=None, max_length=255)
    profile_pic: Optional[str] = Field(default=None, max_length=500)

    @field_validator("status")
    @classmethod
    def not_deleted(cls, value: AccountStatus) -> AccountStatus:
        """DELETED is reached only through the soft-delete endpoint."""
        if value == AccountStatus.DELETED:
            raise ValueError("status DELETED cannot be set directly")
        return value


class UserUpdate(_WireModel):
    """Request body for PATCH /api/v1/users/{id}.

    extra="forbid" turns an attempt to change email, username, or password
    into a 422 instead of silently ignoring it.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    campus: Optional[Campus] = None
    role: Optional[Role] = None
    status: Optional[AccountStatus] = None
    department: Optional[str] = Field(default=None, max_length=255)
    department_id: Optional[str] = Field(default=None, max_length=100)
    vice_president_id: Optional[str] = Field(default=None, max_length=100)
    vice_president_name: Optional[str] = Field(default=None, max_length=255)
    director_id: Optional[str] = Field(default=None, max_length=100)
    director_name: Optional[str] = Field(default=None, max_length=255)
    office_head_id: Optional[str] = Field(default=None, max_length=100)
    office_head_name: Optional[str] = Field(default=None, max_length=255)
    profile_pic: Optional[str] = Field(default=None, max_length=500)

    @field_validator("status")
    @classmethod
    def not_deleted(cls, value: Optional[AccountStatus]) -> Optional[AccountStatus]:
        if value == AccountStatus.DELETED:
            raise ValueError("use DELETE /users/{id} to delete an account")
        return value


# ---------------------------------------------------------------------------
# Users -- response models
# ---------------------------------------------------------------------------


class StatsResponse(_WireModel):
    """Response data for GET /api/v1/users/stats."""

    model_config = ConfigDict(frozen=True)

    total: int
    by_role: dict[str, int]
    by_status: dict[str, int]
    by_campus: dict[str, int]


# ---------------------------------------------------------------------------
# Envelope and service models
# ---------------------------------------------------------------------------


class ErrorDetail(_WireModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    status_code: int
    detail: Optional[str] = None


class ErrorResponse(_WireModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error: ErrorDetail
    timestamp: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


class ApiInfoResponse(BaseModel):
    """Response for GET /."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    docs: str = "/docs"
    health: str = "/api/v1/health"
