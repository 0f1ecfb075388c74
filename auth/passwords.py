"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

bcrypt only reads the first 72 bytes of its input, and bcrypt 5 raises
ValueError instead of ignoring the rest. A 35-character password can exceed
72 bytes once encoded (four bytes per emoji), so both functions cut the
encoded plaintext to 72 bytes before calling bcrypt.

The cost factor (rounds) is injected from Settings.bcrypt_rounds; 10 is the
default. Hashing is intentionally slow and is never parallelized or cached.

Layer rule: stdlib + bcrypt only.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10

BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A missing or malformed hash is a mismatch, not an error.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError:
        return False
