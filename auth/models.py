"""
auth/models.py -- Domain dataclass for the demo user principal.

Pattern: Data class (pure data container, zero logic). The orchestrator in
core/ never inspects principals; this is just the shape the bundled
strategies, serializers and routes agree on.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A local account that can log in with a password or a bearer token.

    hashed_password is a bcrypt hash. `id` is what the serialize chain stores
    in the session; the deserialize chain turns it back into a User.
    """

    username: str
    role: str = "user"  # "admin" or "user"
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None
    last_login: str | None = None
    is_active: bool = True
