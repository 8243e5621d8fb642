"""Email/password sign-in for dashboard staff, stored alongside the CRM data."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import secrets
from dataclasses import dataclass
from typing import Callable

from .errors import AuthError
from .store import DataGateway

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PBKDF2_ROUNDS = 120_000
MIN_PASSWORD_LENGTH = 6

AuthEvent = str
AuthListener = Callable[[AuthEvent, "AuthSession | None"], None]


@dataclass(frozen=True)
class AuthSession:
    user_id: int
    email: str
    token: str


def _hash_password(password: str, salt: str) -> str:
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), _PBKDF2_ROUNDS)
    return digest.hex()


class AuthService:
    """Sign up, sign in, and sign out; listeners hear every session change."""

    def __init__(self, gateway: DataGateway) -> None:
        self.gateway = gateway
        self.session: AuthSession | None = None
        self._listeners: list[AuthListener] = []

    def on_auth_state_change(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            listener(event, self.session)

    def sign_up(self, email: str, password: str) -> AuthSession:
        clean_email = (email or "").strip().lower()
        if not _EMAIL_PATTERN.match(clean_email):
            raise AuthError("Enter a valid email address.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if self.gateway.count("users", {"email": clean_email}):
            raise AuthError("An account with this email already exists.")

        salt = secrets.token_hex(16)
        self.gateway.insert(
            "users",
            {"email": clean_email, "password_hash": _hash_password(password, salt), "salt": salt},
        )
        logger.info("Registered dashboard user %s", clean_email)
        return self.sign_in(clean_email, password)

    def sign_in(self, email: str, password: str) -> AuthSession:
        clean_email = (email or "").strip().lower()
        rows = self.gateway.select("users", {"email": clean_email}, limit=1)
        if not rows:
            raise AuthError("Invalid email or password.")

        user = rows[0]
        expected = _hash_password(password or "", user["salt"])
        if not hmac.compare_digest(expected, user["password_hash"]):
            logger.warning("Rejected sign-in for %s", clean_email)
            raise AuthError("Invalid email or password.")

        self.session = AuthSession(user_id=int(user["id"]), email=clean_email, token=secrets.token_urlsafe(24))
        self._emit("SIGNED_IN")
        return self.session

    def sign_out(self) -> None:
        if self.session is None:
            return
        self.session = None
        self._emit("SIGNED_OUT")
