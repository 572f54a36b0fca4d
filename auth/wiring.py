"""
auth/wiring.py -- Builds the application's Authenticator.

Connects the generic kernel in core/ to this deployment's user store:

  local    LocalStrategy   -> authenticate_user() (bcrypt, timing-equalized)
  bearer   BearerStrategy  -> decode_access_token() + UserStore.get_by_id()
  anonymous AnonymousStrategy
  session  (built in)      -> the deserialize handler below

Sessions store only User.id; every request re-reads the user so a disabled
account loses access on its next request.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from auth.models import User
from auth.store import UserStore
from auth.strategies import AnonymousStrategy, BearerStrategy, LocalStrategy
from auth.tokens import authenticate_user, decode_access_token
from core.authenticator import Authenticator
from core.codec import PASS
from core.config import Settings, get_settings

logger = logging.getLogger("gatehouse.auth.wiring")


def build_authenticator(user_store: UserStore, settings: Optional[Settings] = None) -> Authenticator:
    settings = settings or get_settings()
    authenticator = Authenticator(key=settings.session_key)

    def verify_credentials(username: str, password: str) -> Optional[User]:
        user = authenticate_user(user_store, username, password)
        if user is None:
            logger.info("Rejected password login for %r", username)
        return user

    def verify_token(token: str) -> Any:
        payload = decode_access_token(token)
        if payload is None:
            return None
        user = user_store.get_by_id(payload["user_id"])
        if user is None or not user.is_active:
            return None
        return user, {"scope": "token", "role": payload["role"]}

    authenticator.use(LocalStrategy(verify_credentials))
    authenticator.use(BearerStrategy(verify_token))
    authenticator.use(AnonymousStrategy())

    @authenticator.serialize_user
    def user_id(user: Any) -> Any:
        if not isinstance(user, User) or user.id is None:
            return PASS
        user_store.update_last_login(user.id)
        return user.id

    @authenticator.deserialize_user
    def load_user(identifier: Any) -> Any:
        user = user_store.get_by_id(identifier)
        if user is None or not user.is_active:
            return False
        return user

    return authenticator
