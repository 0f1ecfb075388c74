"""
core/models.py -- Closed vocabularies shared by every layer of unidir.

These enums are the kernel's domain truth for account metadata. auth/ and
directory/ import them; core/ imports nothing from either.

str-valued Enum subclasses so values round-trip through SQLite TEXT columns,
JWT claims, and JSON bodies without custom encoders.
"""

from enum import Enum


class Role(str, Enum):
    """Account role. Authorization is set membership over these values.

    There is no inheritance between roles: a PRESIDENT is not implicitly
    allowed on an OFFICE_HEAD route. Routes list every role they accept.
    """

    ADMIN = "ADMIN"
    PRESIDENT = "PRESIDENT"
    VICE_PRESIDENT = "VICE_PRESIDENT"
    DIRECTOR = "DIRECTOR"
    OFFICE_HEAD = "OFFICE_HEAD"


class AccountStatus(str, Enum):
    """Lifecycle state. Only ACTIVE accounts may authenticate."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    SUSPENDED = "SUSPENDED"
    DELETED = "DELETED"


class Campus(str, Enum):
    TALISAY = "TALISAY"
    BINALBAGAN = "BINALBAGAN"
    FORTUNE_TOWN = "FORTUNE_TOWN"
    ALIJIS = "ALIJIS"


# Placeholder avatar for accounts created without a picture.
DEFAULT_PROFILE_PIC = "no-photo.png"
