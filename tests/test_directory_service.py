"""
tests/test_directory_service.py -- Unit tests for DirectoryService and the demo seed.

Covers:
  - create: normalization, password hashing, uniqueness messages, defaults
  - get/update on live, missing and soft-deleted accounts
  - update refuses email, username and password
  - remove/restore lifecycle and hard_delete
  - list paging metadata and stats grouping
  - seed_directory: hierarchy wiring, idempotence, reset
"""

from __future__ import annotations

import pytest

from auth.models import AccountFilter
from auth.passwords import verify_password
from core.errors import ConflictError, NotFoundError
from core.models import DEFAULT_PROFILE_PIC, AccountStatus, Campus, Role
from directory.seed import ADMIN_EMAIL, ADMIN_PASSWORD, DEMO_ACCOUNTS, seed_directory


def _create(directory, email="jane@university.edu", username="jane", **overrides):
    fields = {
        "email": email,
        "username": username,
        "first_name": "Jane",
        "last_name": "Doe",
        "password": "Secret@123",
        "campus": Campus.TALISAY,
    }
    fields.update(overrides)
    return directory.create(**fields)


class TestCreate:
    def test_normalizes_and_hashes(self, directory, store):
        profile = _create(directory, email="  Jane@University.EDU ", username="Jane")
        assert profile.email == "jane@university.edu"
        assert profile.username == "jane"
        stored = store.find_by_id(profile.id)
        assert stored.password_hash != "Secret@123"
        assert verify_password("Secret@123", stored.password_hash)

    def test_defaults(self, directory):
        profile = _create(directory)
        assert profile.role == Role.OFFICE_HEAD
        assert profile.status == AccountStatus.PENDING
        assert profile.profile_pic == DEFAULT_PROFILE_PIC
        assert profile.deleted is False

    def test_hierarchy_metadata(self, directory):
        profile = _create(directory, department="Computer Science", director_id="4", director_name="John Smith")
        assert profile.department == "Computer Science"
        assert profile.director_id == "4"
        assert profile.director_name == "John Smith"

    def test_duplicate_email(self, directory):
        _create(directory)
        with pytest.raises(ConflictError, match="Email already exists"):
            _create(directory, email="JANE@university.edu", username="other")

    def test_duplicate_email_of_deleted_account(self, directory):
        profile = _create(directory)
        directory.remove(profile.id)
        with pytest.raises(ConflictError, match="Email already exists"):
            _create(directory, username="other")

    def test_duplicate_username(self, directory):
        _create(directory)
        with pytest.raises(ConflictError, match="Username already exists"):
            _create(directory, email="other@university.edu", username="JANE")

    def test_unknown_field_rejected(self, directory):
        with pytest.raises(ValueError):
            _create(directory, shoe_size=42)


class TestReadUpdate:
    def test_get_missing(self, directory):
        with pytest.raises(NotFoundError):
            directory.get(9999)

    def test_get_deleted_is_not_found(self, directory):
        profile = _create(directory)
        directory.remove(profile.id)
        with pytest.raises(NotFoundError):
            directory.get(profile.id)

    def test_update_fields(self, directory):
        profile = _create(directory)
        updated = directory.update(profile.id, status=AccountStatus.ACTIVE, role=Role.DIRECTOR, last_name="Smith")
        assert updated.status == AccountStatus.ACTIVE
        assert updated.role == Role.DIRECTOR
        assert updated.last_name == "Smith"
        assert updated.email == profile.email

    def test_update_with_no_fields_returns_current(self, directory):
        profile = _create(directory)
        assert directory.update(profile.id).id == profile.id

    @pytest.mark.parametrize("field", ["email", "username", "password", "password_hash", "deleted"])
    def test_update_refuses_identity_fields(self, directory, field):
        profile = _create(directory)
        with pytest.raises(ValueError):
            directory.update(profile.id, **{field: "x"})

    def test_update_missing(self, directory):
        with pytest.raises(NotFoundError):
            directory.update(9999, first_name="Ghost")

    def test_update_deleted_is_not_found(self, directory):
        profile = _create(directory)
        directory.remove(profile.id)
        with pytest.raises(NotFoundError):
            directory.update(profile.id, first_name="Ghost")


class TestLifecycle:
    def test_remove_is_soft(self, directory, store):
        profile = _create(directory)
        removed = directory.remove(profile.id)
        assert removed.deleted is True
        assert removed.status == AccountStatus.DELETED
        assert store.find_by_id(profile.id) is not None

    def test_remove_twice_is_not_found(self, directory):
        profile = _create(directory)
        directory.remove(profile.id)
        with pytest.raises(NotFoundError):
            directory.remove(profile.id)

    def test_restore(self, directory):
        profile = _create(directory)
        directory.remove(profile.id)
        restored = directory.restore(profile.id)
        assert restored.deleted is False
        assert restored.status == AccountStatus.ACTIVE
        assert directory.get(profile.id).id == profile.id

    def test_restore_live_account_is_conflict(self, directory):
        profile = _create(directory)
        with pytest.raises(ConflictError):
            directory.restore(profile.id)

    def test_restore_missing(self, directory):
        with pytest.raises(NotFoundError):
            directory.restore(9999)

    def test_hard_delete(self, directory, store):
        profile = _create(directory)
        directory.hard_delete(profile.id)
        assert store.find_by_id(profile.id) is None
        with pytest.raises(NotFoundError):
            directory.hard_delete(profile.id)


class TestListAndStats:
    def test_list_pages(self, directory):
        for i in range(5):
            _create(directory, email=f"user{i}@university.edu", username=f"user{i}")
        page = directory.list(AccountFilter(), page=2, limit=2, sort_by="email", sort_order="asc")
        assert page.total == 5
        assert page.page == 2
        assert page.limit == 2
        assert [p.email for p in page.items] == ["user2@university.edu", "user3@university.edu"]

    def test_list_rejects_bad_arguments(self, directory):
        with pytest.raises(ValueError):
            directory.list(page=0)
        with pytest.raises(ValueError):
            directory.list(sort_by="password_hash")

    def test_stats(self, directory):
        _create(directory, email="a@university.edu", username="a", role=Role.ADMIN, status=AccountStatus.ACTIVE)
        _create(directory, email="b@university.edu", username="b", campus=Campus.BINALBAGAN)
        gone = _create(directory, email="c@university.edu", username="c")
        directory.remove(gone.id)

        stats = directory.stats()
        assert stats["total"] == 2
        assert stats["by_role"] == {"ADMIN": 1, "OFFICE_HEAD": 1}
        assert stats["by_status"] == {"ACTIVE": 1, "PENDING": 1}
        assert stats["by_campus"] == {"TALISAY": 1, "BINALBAGAN": 1}


class TestSeed:
    def test_seed_creates_demo_accounts(self, directory, store):
        created = seed_directory(directory)
        assert len(created) == len(DEMO_ACCOUNTS)

        admin = store.find_by_email(ADMIN_EMAIL)
        assert admin.role == Role.ADMIN
        assert admin.status == AccountStatus.ACTIVE
        assert verify_password(ADMIN_PASSWORD, admin.password_hash)

    def test_seed_wires_hierarchy(self, directory, store):
        seed_directory(directory)
        vp = store.find_by_email("vp.academic@university.edu")
        director = store.find_by_email("director.cs@university.edu")
        office_head = store.find_by_email("officehead.cs@university.edu")

        assert director.vice_president_id == str(vp.id)
        assert director.vice_president_name == "Maria Santos"
        assert office_head.director_id == str(director.id)
        assert office_head.director_name == "John Smith"
        assert office_head.status == AccountStatus.PENDING

    def test_seed_is_idempotent(self, directory, store):
        seed_directory(directory)
        assert seed_directory(directory) == []
        assert store.count() == len(DEMO_ACCOUNTS)

    def test_seed_reset_recreates(self, directory, store):
        seed_directory(directory)
        created = seed_directory(directory, reset=True)
        assert len(created) == len(DEMO_ACCOUNTS)
        assert store.count() == len(DEMO_ACCOUNTS)
