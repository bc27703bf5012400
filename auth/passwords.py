"""
auth/passwords.py -- Argon2id password hashing and verification.

Security design decisions:
  Argon2id (argon2-cffi PasswordHasher defaults) is memory-hard: each hash
  costs a fixed amount of RAM as well as CPU, which blunts GPU and ASIC
  brute-force. A fresh 16-byte salt is drawn from os.urandom on every call and
  embedded in the returned PHC string, so two users with the same password
  never share a hash.

  Verification is delegated to PasswordHasher.verify(), which compares digests
  in constant time. Never compare hashes or passwords with ==.

  DUMMY_HASH enables timing equalization in CredentialStore.authenticate():
  an unknown username still pays for one Argon2 verification, so response
  time does not reveal whether the username exists.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError

from auth.errors import InternalServerError

logger = logging.getLogger("nori.auth")

_HASHER = PasswordHasher()


def hash_password(plain: str) -> str:
    """Return an Argon2id PHC string for the given plaintext password.

    Raises InternalServerError if the underlying library fails to hash. The
    library error is logged; callers only ever see the generic failure.
    """
    try:
        return _HASHER.hash(plain)
    except HashingError as exc:
        logger.exception("Password hashing failed")
        raise InternalServerError() from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the stored Argon2 hash.

    A mismatch returns False. A stored value that is not a parseable Argon2
    hash is a data-integrity problem, not a wrong password, so it is logged
    and reported as InternalServerError.
    """
    try:
        return _HASHER.verify(hashed, plain)
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as exc:
        logger.error("Stored password hash could not be verified: %s", type(exc).__name__)
        raise InternalServerError() from exc


# Computed once at module load so the first unknown-username login is not
# measurably slower than subsequent ones.
DUMMY_HASH: str = hash_password("nori_timing_dummy")
