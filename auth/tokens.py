"""
auth/tokens.py -- Password hashing and bearer token utilities.

Security design decisions:
  Passwords: bcrypt, used directly. authenticate_user() always runs one bcrypt
       check, against _DUMMY_HASH when the username is unknown, so response
       time does not reveal which usernames exist.

  Tokens: python-jose HS256 JWTs signed with SECRET_KEY, carrying user_id,
       username, role and expiry. decode_access_token() returns None on any
       failure; BearerStrategy turns that into an invalid_token challenge.

Layer rule: no imports from api/. core.config is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("gatehouse.auth.tokens")

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of plain. bcrypt only looks at the first 72 bytes."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


# Computed once at import so the first failed login costs the same as later ones.
_DUMMY_HASH: str = hash_password("gatehouse_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Check a username/password pair with timing equalization.

    Returns the User on success, None for an unknown user, a wrong password,
    or a disabled account.
    """
    user = store.get_by_username(username)
    if user is None or user.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user


# ---------------------------------------------------------------------------
# Access tokens
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, username: str, role: str, expire_seconds: int = 0) -> str:
    """Encode a signed JWT. expire_seconds=0 uses Settings.token_expire_seconds."""
    settings = get_settings()
    duration = expire_seconds if expire_seconds > 0 else settings.token_expire_seconds
    payload = {
        "sub": username,
        "user_id": user_id,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=duration),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Verify and decode a JWT. Returns the payload, or None on any failure."""
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        logger.debug("Rejected bearer token", exc_info=True)
        return None
    if "user_id" not in payload or "role" not in payload:
        return None
    return payload
