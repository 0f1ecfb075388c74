"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these only own the shape.

Account is the full stored record, including password_hash. AccountProfile is
the sanitized projection: every Account field except password_hash. Anything
that leaves the auth core (service results, request.state, API responses) is
an AccountProfile, never an Account.

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from core.models import DEFAULT_PROFILE_PIC, AccountStatus, Campus, Role


@dataclass
class Account:
    """A directory account as stored by AccountStore.

    id is None before the record is written to the database.
    deleted is the soft-delete flag and is independent of status: a deleted
    account never authenticates even if its status is still ACTIVE.
    """

    email: str
    username: str
    first_name: str
    last_name: str
    password_hash: str
    role: Role = Role.OFFICE_HEAD
    status: AccountStatus = AccountStatus.PENDING
    campus: Campus = Campus.TALISAY
    id: Optional[int] = None
    deleted: bool = False
    department: Optional[str] = None
    department_id: Optional[str] = None
    vice_president_id: Optional[str] = None
    vice_president_name: Optional[str] = None
    director_id: Optional[str] = None
    director_name: Optional[str] = None
    office_head_id: Optional[str] = None
    office_head_name: Optional[str] = None
    profile_pic: str = DEFAULT_PROFILE_PIC
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""
    last_login_at: Optional[str] = None


@dataclass(frozen=True)
class AccountProfile:
    """Sanitized account projection -- no password hash."""

    id: int
    email: str
    username: str
    first_name: str
    last_name: str
    role: Role
    status: AccountStatus
    campus: Campus
    deleted: bool = False
    department: Optional[str] = None
    department_id: Optional[str] = None
    vice_president_id: Optional[str] = None
    vice_president_name: Optional[str] = None
    director_id: Optional[str] = None
    director_name: Optional[str] = None
    office_head_id: Optional[str] = None
    office_head_name: Optional[str] = None
    profile_pic: str = DEFAULT_PROFILE_PIC
    created_at: str = ""
    updated_at: str = ""
    last_login_at: Optional[str] = None


@dataclass(frozen=True)
class AccessClaims:
    """Verified access-token claims."""

    account_id: int
    email: str
    role: Role
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class RefreshClaims:
    """Verified refresh-token claims. token_class is always "refresh"."""

    account_id: int
    email: str
    token_class: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access-token lifetime in seconds
    token_type: str = "Bearer"


@dataclass(frozen=True)
class LoginResult:
    tokens: TokenPair
    user: AccountProfile


@dataclass(frozen=True)
class FederatedIdentity:
    """An identity already verified by an external provider (Google).

    The OAuth handshake that produced it is outside the auth core; once an
    instance exists, AuthService.oauth_login() trusts it.
    """

    email: str
    first_name: str = ""
    last_name: str = ""
    picture: Optional[str] = None
    subject: Optional[str] = None  # provider's stable user id, informational


@dataclass
class AccountFilter:
    """Directory list filters. None means "do not filter on this field".

    department and search are substring matches; search spans email,
    username, first_name and last_name. Soft-deleted accounts are excluded
    unless include_deleted is set.
    """

    search: Optional[str] = None
    role: Optional[Role] = None
    status: Optional[AccountStatus] = None
    campus: Optional[Campus] = None
    department: Optional[str] = None
    department_id: Optional[str] = None
    director_id: Optional[str] = None
    vice_president_id: Optional[str] = None
    include_deleted: bool = False


@dataclass
class AccountPage:
    """One page of accounts plus the total count for the unpaginated filter."""

    items: list[AccountProfile] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 10
