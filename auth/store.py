"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository;
_row_to_account is the mapper. Services and routes never touch SQL directly.

Contract used by the auth core:
  find_by_email(email, exclude_deleted)  -> Account | None
  find_by_id(account_id)                 -> Account | None
  create(account)                        -> Account
  update(account_id, **fields)           -> Account | None

Each call opens and commits its own connection, so every operation is atomic
at the single-record level. Nothing here spans a read-then-write: callers
that look up and then create (Google provisioning) can race, and the loser
gets ConflictError from the UNIQUE constraint instead of a duplicate row.

Security:
  All queries use bound parameters. Sort columns come from a fixed allowlist,
  never from raw user input.

Enum columns are stored as their string values; deleted is stored as 0/1
(SQLite has no boolean type) and mapped back to bool.

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, create_engine, event, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Account, AccountFilter
from core.errors import ConflictError
from core.models import DEFAULT_PROFILE_PIC, AccountStatus, Campus, Role

logger = logging.getLogger("unidir.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("username", String(100), nullable=False, unique=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(30), nullable=False, server_default=Role.OFFICE_HEAD.value),
    Column("status", String(30), nullable=False, server_default=AccountStatus.PENDING.value),
    Column("deleted", Integer, nullable=False, server_default="0"),
    Column("campus", String(30), nullable=False, server_default=Campus.TALISAY.value),
    Column("department", String(100)),
    Column("department_id", String(50)),
    Column("vice_president_id", String(50)),
    Column("vice_president_name", String(200)),
    Column("director_id", String(50)),
    Column("director_name", String(200)),
    Column("office_head_id", String(50)),
    Column("office_head_name", String(200)),
    Column("profile_pic", String(500), nullable=False, server_default=DEFAULT_PROFILE_PIC),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("last_login_at", String(32)),
    Index("users_deleted_role_idx", "deleted", "role"),
    Index("users_deleted_status_idx", "deleted", "status"),
    Index("users_director_id_deleted_idx", "director_id", "deleted"),
    Index("users_vice_president_id_deleted_idx", "vice_president_id", "deleted"),
    Index("users_department_id_deleted_idx", "department_id", "deleted"),
    Index("users_created_at_idx", "created_at"),
)

# Columns callers may sort by, keyed by the public sort name.
SORT_COLUMNS = {
    "created_at": _users.c.created_at,
    "updated_at": _users.c.updated_at,
    "email": _users.c.email,
    "username": _users.c.username,
    "first_name": _users.c.first_name,
    "last_name": _users.c.last_name,
}

# Fields update() refuses to touch.
_IMMUTABLE_FIELDS = {"id", "created_at"}

_UNIQUE_MESSAGES = (
    ("email", "Email already exists"),
    ("username", "Username already exists"),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers do not block behind writers.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_column_values(fields: dict) -> dict:
    """Convert domain values (enums, bools) to their column representation."""
    values = {}
    for key, value in fields.items():
        if isinstance(value, Enum):
            value = value.value
        elif key == "deleted":
            value = 1 if value else 0
        values[key] = value
    return values


def _conflict_from(exc: IntegrityError) -> ConflictError:
    """Translate a UNIQUE violation into ConflictError naming the clashing field."""
    text = str(exc.orig).lower()
    for column, message in _UNIQUE_MESSAGES:
        if column in text:
            return ConflictError(message)
    return ConflictError()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account records.

    Usage:
        store = AccountStore(settings.database_url)
        account = store.create(Account(email="a@university.edu", ...))
        store.find_by_email("a@university.edu")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def has_accounts(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return (result or 0) > 0

    def find_by_email(self, email: str, exclude_deleted: bool = True) -> Account | None:
        """Look up an account by normalized email.

        Callers pass an already lower-cased email; the store does not
        normalize so the lookup stays an exact UNIQUE index hit.
        """
        stmt = _users.select().where(_users.c.email == email)
        if exclude_deleted:
            stmt = stmt.where(_users.c.deleted == 0)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_username(self, username: str, exclude_deleted: bool = False) -> Account | None:
        stmt = _users.select().where(_users.c.username == username)
        if exclude_deleted:
            stmt = stmt.where(_users.c.deleted == 0)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_account(row) if row is not None else None

    def find_by_id(self, account_id: int) -> Account | None:
        """Look up an account by primary key, deleted or not.

        Returns soft-deleted rows too: the guard and the refresher need to
        see the deleted flag to reject them explicitly.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, account: Account) -> Account:
        """Insert a new account and return it as stored.

        Raises ConflictError if the email or username is already taken,
        including when a concurrent request inserted the same email between
        the caller's lookup and this insert.
        """
        now = _now_iso()
        values = _to_column_values(
            {
                "email": account.email,
                "username": account.username,
                "first_name": account.first_name,
                "last_name": account.last_name,
                "password_hash": account.password_hash,
                "role": account.role,
                "status": account.status,
                "deleted": account.deleted,
                "campus": account.campus,
                "department": account.department,
                "department_id": account.department_id,
                "vice_president_id": account.vice_president_id,
                "vice_president_name": account.vice_president_name,
                "director_id": account.director_id,
                "director_name": account.director_name,
                "office_head_id": account.office_head_id,
                "office_head_name": account.office_head_name,
                "profile_pic": account.profile_pic or DEFAULT_PROFILE_PIC,
                "created_at": now,
                "updated_at": now,
            }
        )
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.insert().values(**values))
                conn.commit()
                account_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise _conflict_from(exc) from exc
        return self.find_by_id(account_id)

    def update(self, account_id: int, **fields) -> Account | None:
        """Update mutable fields and return the updated account.

        Returns None if account_id does not exist. updated_at is always
        refreshed. Raises ConflictError on a uniqueness clash.
        """
        unknown = set(fields) - set(_users.c.keys())
        if unknown:
            raise ValueError(f"Unknown account fields: {sorted(unknown)!r}")
        blocked = set(fields) & _IMMUTABLE_FIELDS
        if blocked:
            raise ValueError(f"Immutable account fields: {sorted(blocked)!r}")
        values = _to_column_values(fields)
        values["updated_at"] = _now_iso()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_users.update().where(_users.c.id == account_id).values(**values))
                conn.commit()
        except IntegrityError as exc:
            raise _conflict_from(exc) from exc
        if result.rowcount == 0:
            return None
        return self.find_by_id(account_id)

    def update_last_login(self, account_id: int) -> None:
        """Stamp the current UTC time as last_login_at without touching updated_at."""
        with self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == account_id).values(last_login_at=_now_iso()))
            conn.commit()

    def delete(self, account_id: int) -> bool:
        """Permanently delete an account. Returns True if a row was removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == account_id))
            conn.commit()
        return result.rowcount > 0

    def delete_all(self) -> int:
        """Remove every account. Used by the CLI seed --reset path only."""
        with self.engine.connect() as conn:
            result = conn.execute(_users.delete())
            conn.commit()
        return result.rowcount

    # ------------------------------------------------------------------
    # Directory queries
    # ------------------------------------------------------------------

    def list_accounts(
        self,
        filters: AccountFilter | None = None,
        *,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        offset: int = 0,
        limit: int = 10,
    ) -> list[Account]:
        """Return one page of accounts matching filters.

        Ties on the sort column are broken by id in the same direction so
        pages never overlap.
        """
        column = SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValueError(f"Unsupported sort column: {sort_by!r}")
        descending = sort_order.lower() == "desc"
        order = (column.desc(), _users.c.id.desc()) if descending else (column.asc(), _users.c.id.asc())
        stmt = (
            _users.select()
            .where(*_filter_clauses(filters or AccountFilter()))
            .order_by(*order)
            .offset(offset)
            .limit(limit)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_account(r) for r in rows]

    def count(self, filters: AccountFilter | None = None) -> int:
        stmt = select(func.count()).select_from(_users).where(*_filter_clauses(filters or AccountFilter()))
        with self.engine.connect() as conn:
            return conn.execute(stmt).scalar() or 0

    def count_by(self, field: str) -> dict[str, int]:
        """Return {value: count} over non-deleted accounts grouped by role, status, or campus."""
        if field not in ("role", "status", "campus"):
            raise ValueError(f"Unsupported group-by field: {field!r}")
        column = _users.c[field]
        stmt = select(column, func.count()).where(_users.c.deleted == 0).group_by(column)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return {row[0]: row[1] for row in rows}

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Filter builder
# ---------------------------------------------------------------------------


def _filter_clauses(filters: AccountFilter) -> list:
    clauses = []
    if not filters.include_deleted:
        clauses.append(_users.c.deleted == 0)
    if filters.role is not None:
        clauses.append(_users.c.role == Role(filters.role).value)
    if filters.status is not None:
        clauses.append(_users.c.status == AccountStatus(filters.status).value)
    if filters.campus is not None:
        clauses.append(_users.c.campus == Campus(filters.campus).value)
    if filters.department:
        clauses.append(_users.c.department.contains(filters.department, autoescape=True))
    if filters.department_id:
        clauses.append(_users.c.department_id == filters.department_id)
    if filters.director_id:
        clauses.append(_users.c.director_id == filters.director_id)
    if filters.vice_president_id:
        clauses.append(_users.c.vice_president_id == filters.vice_president_id)
    if filters.search:
        term = filters.search
        clauses.append(
            or_(
                _users.c.email.contains(term, autoescape=True),
                _users.c.username.contains(term, autoescape=True),
                _users.c.first_name.contains(term, autoescape=True),
                _users.c.last_name.contains(term, autoescape=True),
            )
        )
    return clauses


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        username=row.username,
        first_name=row.first_name,
        last_name=row.last_name,
        password_hash=row.password_hash,
        role=Role(row.role),
        status=AccountStatus(row.status),
        deleted=bool(row.deleted),
        campus=Campus(row.campus),
        department=row.department,
        department_id=row.department_id,
        vice_president_id=row.vice_president_id,
        vice_president_name=row.vice_president_name,
        director_id=row.director_id,
        director_name=row.director_name,
        office_head_id=row.office_head_id,
        office_head_name=row.office_head_name,
        profile_pic=row.profile_pic,
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_login_at=row.last_login_at,
    )
