"""
directory/service.py -- Account CRUD for the university user directory.

Pattern: Service layer over AccountStore. Routes translate request models into
keyword arguments and call DirectoryService; the service applies the business
rules (normalization, uniqueness messages, soft delete) and returns sanitized
AccountProfile objects. Nothing here returns a password hash.

Rules:
  - email and username are stored lower-cased and are immutable after create.
  - Passwords are hashed with the same bcrypt cost factor as the auth core.
  - Soft-deleted accounts are invisible to get/update/list; remove() sets
    deleted=True and status=DELETED; restore() reverses both (status ACTIVE).
  - hard_delete() removes the row; it is the only path that sees deleted rows.

Layer rule: directory/ may import from auth/ and core/, never from api/.
"""

from __future__ import annotations

import logging

from auth.models import Account, AccountFilter, AccountPage, AccountProfile
from auth.passwords import hash_password
from auth.service import normalize_email, to_profile
from auth.store import SORT_COLUMNS, AccountStore
from core.errors import ConflictError, NotFoundError
from core.models import DEFAULT_PROFILE_PIC, AccountStatus, Campus, Role
from core.pagination import offset_for

logger = logging.getLogger("unidir.directory")

# Fields update() accepts. email, username, and password are deliberately absent.
UPDATABLE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "campus",
        "department",
        "department_id",
        "role",
        "status",
        "vice_president_id",
        "vice_president_name",
        "director_id",
        "director_name",
        "office_head_id",
        "office_head_name",
        "profile_pic",
    }
)

_METADATA_FIELDS = (
    "department",
    "department_id",
    "vice_president_id",
    "vice_president_name",
    "director_id",
    "director_name",
    "office_head_id",
    "office_head_name",
)


class DirectoryService:
    """Create, query, update, and (soft-)delete directory accounts.

    Usage:
        directory = DirectoryService(store, bcrypt_rounds=10)
        profile = directory.create(email="x@university.edu", username="x", ...)
        page = directory.list(AccountFilter(role=Role.DIRECTOR), page=1, limit=10)
    """

    def __init__(self, store: AccountStore, bcrypt_rounds: int = 10) -> None:
        self.store = store
        self._rounds = bcrypt_rounds

    def create(
        self,
        *,
        email: str,
        username: str,
        first_name: str,
        last_name: str,
        password: str,
        campus: Campus,
        role: Role = Role.OFFICE_HEAD,
        status: AccountStatus = AccountStatus.PENDING,
        profile_pic: str | None = None,
        **metadata,
    ) -> AccountProfile:
        """Create an account. Raises ConflictError if the email or username is taken."""
        unknown = set(metadata) - set(_METADATA_FIELDS)
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)!r}")

        email = normalize_email(email)
        username = username.strip().lower()
        # Checked up front for a precise message; the UNIQUE constraint still
        # catches a concurrent insert that lands between check and create.
        if self.store.find_by_email(email, exclude_deleted=False) is not None:
            raise ConflictError("Email already exists")
        if self.store.find_by_username(username) is not None:
            raise ConflictError("Username already exists")

        account = self.store.create(
            Account(
                email=email,
                username=username,
                first_name=first_name,
                last_name=last_name,
                password_hash=hash_password(password, rounds=self._rounds),
                role=Role(role),
                status=AccountStatus(status),
                campus=Campus(campus),
                profile_pic=profile_pic or DEFAULT_PROFILE_PIC,
                **metadata,
            )
        )
        logger.info("User created: %s (ID: %s)", account.email, account.id)
        return to_profile(account)

    def list(
        self,
        filters: AccountFilter | None = None,
        *,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> AccountPage:
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")
        if sort_by not in SORT_COLUMNS:
            raise ValueError(f"Unsupported sort column: {sort_by!r}")
        filters = filters or AccountFilter()
        accounts = self.store.list_accounts(
            filters,
            sort_by=sort_by,
            sort_order=sort_order,
            offset=offset_for(page, limit),
            limit=limit,
        )
        return AccountPage(
            items=[to_profile(a) for a in accounts],
            total=self.store.count(filters),
            page=page,
            limit=limit,
        )

    def get(self, account_id: int) -> AccountProfile:
        return to_profile(self._get_live(account_id))

    def update(self, account_id: int, **fields) -> AccountProfile:
        """Update mutable fields of a live (not soft-deleted) account."""
        blocked = set(fields) - UPDATABLE_FIELDS
        if blocked:
            raise ValueError(f"Fields cannot be updated: {sorted(blocked)!r}")
        self._get_live(account_id)
        if not fields:
            return self.get(account_id)
        account = self.store.update(account_id, **fields)
        if account is None:
            raise NotFoundError(f"User with ID {account_id} not found")
        logger.info("User updated: %s (ID: %s)", account.email, account.id)
        return to_profile(account)

    def remove(self, account_id: int) -> AccountProfile:
        """Soft-delete: the row stays, deleted=True and status=DELETED."""
        self._get_live(account_id)
        account = self.store.update(account_id, deleted=True, status=AccountStatus.DELETED)
        logger.info("User soft-deleted: %s (ID: %s)", account.email, account.id)
        return to_profile(account)

    def restore(self, account_id: int) -> AccountProfile:
        account = self.store.find_by_id(account_id)
        if account is None:
            raise NotFoundError(f"User with ID {account_id} not found")
        if not account.deleted:
            raise ConflictError("User is not deleted")
        account = self.store.update(account_id, deleted=False, status=AccountStatus.ACTIVE)
        logger.info("User restored: %s (ID: %s)", account.email, account.id)
        return to_profile(account)

    def hard_delete(self, account_id: int) -> AccountProfile:
        account = self.store.find_by_id(account_id)
        if account is None:
            raise NotFoundError(f"User with ID {account_id} not found")
        self.store.delete(account_id)
        logger.warning("User permanently deleted: %s (ID: %s)", account.email, account.id)
        return to_profile(account)

    def stats(self) -> dict:
        """Counts over non-deleted accounts: total and grouped by role, status, campus."""
        return {
            "total": self.store.count(AccountFilter()),
            "by_role": self.store.count_by("role"),
            "by_status": self.store.count_by("status"),
            "by_campus": self.store.count_by("campus"),
        }

    def _get_live(self, account_id: int) -> Account:
        account = self.store.find_by_id(account_id)
        if account is None or account.deleted:
            raise NotFoundError(f"User with ID {account_id} not found")
        return account
