"""
directory/seed.py -- Demo accounts for a fresh directory.

seed_directory() creates one account per role plus a PENDING office head, wired
into the reporting hierarchy (office head -> director -> vice president).
Accounts whose email already exists are left untouched, so running the seed
twice is harmless. reset=True wipes every account first.

Used by `python main.py seed`.
"""

from __future__ import annotations

import logging

from auth.models import AccountProfile
from auth.service import to_profile
from core.models import AccountStatus, Campus, Role
from directory.service import DirectoryService

logger = logging.getLogger("unidir.directory")

ADMIN_EMAIL = "admin@university.edu"
ADMIN_PASSWORD = "Admin@123"  # noqa: S105 # nosec B105 -- documented demo credential

# Hierarchy links are filled in at seed time from the ids of earlier entries:
# "vp" and "director" name the entry whose id and full name are copied in.
DEMO_ACCOUNTS: list[dict] = [
    {
        "email": ADMIN_EMAIL,
        "username": "admin",
        "first_name": "System",
        "last_name": "Administrator",
        "password": ADMIN_PASSWORD,
        "role": Role.ADMIN,
        "status": AccountStatus.ACTIVE,
        "campus": Campus.TALISAY,
        "department": "IT Department",
    },
    {
        "email": "president@university.edu",
        "username": "president",
        "first_name": "James",
        "last_name": "Wilson",
        "password": "President@123",
        "role": Role.PRESIDENT,
        "status": AccountStatus.ACTIVE,
        "campus": Campus.TALISAY,
        "department": "Executive Office",
    },
    {
        "email": "vp.academic@university.edu",
        "username": "vp_academic",
        "first_name": "Maria",
        "last_name": "Santos",
        "password": "VicePresident@123",
        "role": Role.VICE_PRESIDENT,
        "status": AccountStatus.ACTIVE,
        "campus": Campus.TALISAY,
        "department": "Academic Affairs",
    },
    {
        "email": "director.cs@university.edu",
        "username": "director_cs",
        "first_name": "John",
        "last_name": "Smith",
        "password": "Director@123",
        "role": Role.DIRECTOR,
        "status": AccountStatus.ACTIVE,
        "campus": Campus.TALISAY,
        "department": "Computer Science",
        "department_id": "DEPT-CS-001",
        "vp": "vp.academic@university.edu",
    },
    {
        "email": "officehead.cs@university.edu",
        "username": "officehead_cs",
        "first_name": "Jane",
        "last_name": "Doe",
        "password": "OfficeHead@123",
        "role": Role.OFFICE_HEAD,
        "status": AccountStatus.PENDING,
        "campus": Campus.TALISAY,
        "department": "Computer Science",
        "department_id": "DEPT-CS-001",
        "vp": "vp.academic@university.edu",
        "director": "director.cs@university.edu",
    },
    {
        "email": "officehead.it@university.edu",
        "username": "officehead_it",
        "first_name": "Robert",
        "last_name": "Johnson",
        "password": "OfficeHead@123",
        "role": Role.OFFICE_HEAD,
        "status": AccountStatus.ACTIVE,
        "campus": Campus.BINALBAGAN,
        "department": "Information Technology",
        "department_id": "DEPT-IT-001",
    },
]


def _full_name(profile: AccountProfile) -> str:
    return f"{profile.first_name} {profile.last_name}"


def seed_directory(directory: DirectoryService, reset: bool = False) -> list[AccountProfile]:
    """Create the demo accounts. Returns only the accounts created by this call."""
    store = directory.store
    if reset:
        removed = store.delete_all()
        logger.warning("Seed reset: removed %d existing account(s)", removed)

    by_email: dict[str, AccountProfile] = {}
    created: list[AccountProfile] = []
    for entry in DEMO_ACCOUNTS:
        fields = dict(entry)
        vp_email = fields.pop("vp", None)
        director_email = fields.pop("director", None)

        existing = store.find_by_email(fields["email"], exclude_deleted=False)
        if existing is not None:
            logger.info("Seed: %s already exists, skipping", fields["email"])
            if not existing.deleted:
                by_email[existing.email] = to_profile(existing)
            continue

        if vp_email and by_email.get(vp_email):
            fields["vice_president_id"] = str(by_email[vp_email].id)
            fields["vice_president_name"] = _full_name(by_email[vp_email])
        if director_email and by_email.get(director_email):
            fields["director_id"] = str(by_email[director_email].id)
            fields["director_name"] = _full_name(by_email[director_email])

        profile = directory.create(**fields)
        by_email[profile.email] = profile
        created.append(profile)
    return created
