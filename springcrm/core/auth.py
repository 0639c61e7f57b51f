"""Password login and bearer-token verification for the HTTP API."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from springcrm.config import AuthConfig
from springcrm.store import JsonStore, now_iso
from springcrm.utils.logging import get_logger

log = get_logger(__name__)

JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    """User record without the password hash."""
    return {k: v for k, v in user.items() if k != "password"}


class AuthManager:
    def __init__(self, config: AuthConfig, store: JsonStore) -> None:
        self._config = config
        self._store = store
        self._secret = config.jwt_secret
        if not self._secret:
            # Tokens will not survive a restart
            self._secret = secrets.token_hex(32)
            log.warning("jwt_secret_generated", msg="No auth.jwt_secret configured; using an ephemeral secret.")

    def ensure_admin(self) -> None:
        """Seed the bootstrap admin account when no users exist."""
        if self._store.all("users"):
            return
        self._store.insert("users", {
            "id": "1",
            "username": self._config.admin_username,
            "password": hash_password(self._config.admin_password),
            "name": self._config.admin_name,
            "role": "admin",
            "createdAt": now_iso(),
        })
        log.info("admin_seeded", username=self._config.admin_username)

    def login(self, username: str, password: str) -> tuple[str, dict[str, Any]] | None:
        """Return (token, public user) for valid credentials, else None."""
        user = self._store.find("users", username=username)
        if user is None or not verify_password(password, user.get("password", "")):
            log.info("login_failed", username=username)
            return None
        log.info("login_succeeded", username=username)
        return self.issue_token(user), public_user(user)

    def issue_token(self, user: dict[str, Any]) -> str:
        expiry = datetime.now(timezone.utc) + timedelta(hours=self._config.token_ttl_hours)
        return jwt.encode({"id": user["id"], "exp": expiry}, self._secret, algorithm=JWT_ALGORITHM)

    def authenticate(self, token: str) -> dict[str, Any] | None:
        """Resolve a bearer token to its user record, or None if invalid/expired."""
        if not token:
            return None
        try:
            claims = jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM])
        except jwt.PyJWTError:
            return None
        return self._store.get("users", str(claims.get("id", "")))
