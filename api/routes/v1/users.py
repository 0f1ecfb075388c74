"""
api/routes/v1/users.py -- Directory (account management) REST endpoints.

Routes:
  POST   /api/v1/users                  -- create account (admin only)
  GET    /api/v1/users                  -- paginated, filtered, sorted list
  GET    /api/v1/users/stats            -- counts by role, status, campus
  GET    /api/v1/users/{id}             -- single account
  PATCH  /api/v1/users/{id}             -- update mutable fields (admin only)
  DELETE /api/v1/users/{id}             -- soft delete (admin only)
  PATCH  /api/v1/users/{id}/restore     -- undo soft delete (admin only)
  DELETE /api/v1/users/{id}/permanent   -- hard delete (admin only)

Every route is behind the app-wide access_guard. Write routes additionally
require the ADMIN role via require_admin.

Route registration order: /users/stats must come before /users/{user_id}
so FastAPI doesn't try to parse "stats" as an integer id.
"""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from api.models import AccountResponse, StatsResponse, UserCreate, UserUpdate
from api.responses import paginated, success
from auth.dependencies import require_admin
from auth.models import AccountFilter, AccountProfile
from auth.store import SORT_COLUMNS
from core.models import AccountStatus, Campus, Role
from core.pagination import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from directory.service import DirectoryService

# Auth policy:
# - GET    /api/v1/users, /users/stats, /users/{id}:  any ACTIVE account (access_guard)
# - POST   /api/v1/users:                              requires admin (require_admin)
# - PATCH  /api/v1/users/{id}, /users/{id}/restore:    requires admin (require_admin)
# - DELETE /api/v1/users/{id}, /users/{id}/permanent:  requires admin (require_admin)
router = APIRouter()


def _directory(request: Request) -> DirectoryService:
    return request.app.state.directory


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.post("/users", status_code=201, dependencies=[Depends(require_admin)])
def create_user(request: Request, body: UserCreate) -> JSONResponse:
    """Create an account. 409 if the email or username is already taken."""
    profile = _directory(request).create(**body.model_dump())
    return success(AccountResponse.from_profile(profile), message="User created successfully", status_code=201)


@router.get("/users")
def list_users(
    request: Request,
    page: int = Query(default=DEFAULT_PAGE, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = Query(default=None, max_length=255),
    role: Optional[Role] = None,
    status: Optional[AccountStatus] = None,
    campus: Optional[Campus] = None,
    department: Optional[str] = Query(default=None, max_length=255),
    department_id: Optional[str] = Query(default=None, alias="departmentId"),
    director_id: Optional[str] = Query(default=None, alias="directorId"),
    vice_president_id: Optional[str] = Query(default=None, alias="vicePresidentId"),
    sort_by: str = Query(default="created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
) -> JSONResponse:
    """Return one page of non-deleted accounts.

    search is a substring match over email, username, first and last name.
    sortBy accepts created_at, updated_at, email, username, first_name, last_name.
    """
    if sort_by not in SORT_COLUMNS:
        raise HTTPException(
            status_code=400,
            detail=f"sortBy must be one of: {', '.join(SORT_COLUMNS)}",
        )
    filters = AccountFilter(
        search=search or None,
        role=role,
        status=status,
        campus=campus,
        department=department or None,
        department_id=department_id,
        director_id=director_id,
        vice_president_id=vice_president_id,
    )
    result = _directory(request).list(filters, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
    return paginated(
        [AccountResponse.from_profile(p) for p in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
    )


@router.get("/users/stats")
def user_stats(request: Request) -> JSONResponse:
    return success(StatsResponse(**_directory(request).stats()), message="User statistics retrieved")


# ---------------------------------------------------------------------------
# Single account
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}")
def get_user(request: Request, user_id: int) -> JSONResponse:
    profile = _directory(request).get(user_id)
    return success(AccountResponse.from_profile(profile), message="User retrieved successfully")


@router.patch("/users/{user_id}")
def update_user(
    request: Request,
    user_id: int,
    body: UserUpdate,
    admin: AccountProfile = Depends(require_admin),
) -> JSONResponse:
    """Update only the fields present in the body (exclude_unset)."""
    profile = _directory(request).update(user_id, **body.model_dump(exclude_unset=True))
    return success(AccountResponse.from_profile(profile), message="User updated successfully")


@router.delete("/users/{user_id}")
def delete_user(
    request: Request,
    user_id: int,
    admin: AccountProfile = Depends(require_admin),
) -> JSONResponse:
    """Soft delete. An admin cannot delete their own account."""
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account.")
    profile = _directory(request).remove(user_id)
    return success(AccountResponse.from_profile(profile), message="User deleted successfully")


@router.patch("/users/{user_id}/restore", dependencies=[Depends(require_admin)])
def restore_user(request: Request, user_id: int) -> JSONResponse:
    profile = _directory(request).restore(user_id)
    return success(AccountResponse.from_profile(profile), message="User restored successfully")


@router.delete("/users/{user_id}/permanent")
def hard_delete_user(
    request: Request,
    user_id: int,
    admin: AccountProfile = Depends(require_admin),
) -> JSONResponse:
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account.")
    _directory(request).hard_delete(user_id)
    return success(None, message="User permanently deleted")
