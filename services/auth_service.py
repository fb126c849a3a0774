"""
Auth service: register, login, refresh, logout and profile.

A refresh token moves ISSUED -> ROTATED | REVOKED | EXPIRED and is never
reused: every successful refresh deletes its ledger row and inserts a new one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

from models.user import Role, User
from services.credential_store import UserStore, normalize_email
from services.token_ledger import RefreshTokenLedger
from utils.clock import as_utc, utcnow
from utils.errors import AuthError, ErrorKind
from utils.security import build_password_hasher, hash_password, verify_password
from utils.tokens import TokenCodec

if TYPE_CHECKING:
    from api.config import AuthSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    user: User
    access_token: str
    refresh_token: str


class AuthService:
    def __init__(
        self,
        settings: "AuthSettings",
        storage,
        codec: Optional[TokenCodec] = None,
        users: Optional[UserStore] = None,
        ledger: Optional[RefreshTokenLedger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._storage = storage
        self._codec = codec or TokenCodec(settings)
        self._users = users or UserStore(storage)
        self._ledger = ledger or RefreshTokenLedger(storage)
        self._hasher = build_password_hasher(settings.password_hash_cost, settings.password_hash_memory_kib)
        self._clock = clock

    @property
    def codec(self) -> TokenCodec:
        return self._codec

    def create_user(self, name: str, email: str, password: str, role: Role = Role.USER) -> User:
        """Hash `password` and insert an active user without signing them in."""
        email = normalize_email(email)
        if self._users.find_by_email(email) is not None:
            logger.warning("User creation failed: user already exists (email=%s)", email)
            raise AuthError(ErrorKind.DUPLICATE_EMAIL)

        password_hash = hash_password(self._hasher, password)
        user = self._users.create(name=name, email=email, password_hash=password_hash, role=role)
        logger.info("User created (user_id=%s, email=%s, role=%s)", user.id, email, user.role.value)
        return user

    def register(self, name: str, email: str, password: str) -> AuthResult:
        email = normalize_email(email)
        with self._storage.transaction():
            user = self.create_user(name, email, password)
            pair = self._issue_and_store(user)

        logger.info("User registered successfully (user_id=%s, email=%s)", user.id, email)
        return AuthResult(user=user, access_token=pair.access_token, refresh_token=pair.refresh_token)

    def login(self, email: str, password: str) -> AuthResult:
        email = normalize_email(email)
        user = self._users.find_by_email(email)
        if user is None:
            logger.warning("Login failed: user not found (email=%s)", email)
            raise AuthError(ErrorKind.INVALID_CREDENTIALS)
        if not user.is_active:
            logger.warning("Login failed: user account is inactive (user_id=%s, email=%s)", user.id, email)
            raise AuthError(ErrorKind.ACCOUNT_INACTIVE)
        if not verify_password(self._hasher, password, user.password_hash):
            logger.warning("Login failed: invalid password (user_id=%s, email=%s)", user.id, email)
            raise AuthError(ErrorKind.INVALID_CREDENTIALS)

        with self._storage.transaction():
            pair = self._issue_and_store(user)

        logger.info("User logged in successfully (user_id=%s, email=%s)", user.id, email)
        return AuthResult(user=user, access_token=pair.access_token, refresh_token=pair.refresh_token)

    def refresh(self, refresh_token: str) -> TokenPair:
        # signature first: malformed input never reaches the database
        payload = self._codec.verify_refresh_token(refresh_token)
        if payload is None:
            raise AuthError(ErrorKind.INVALID_TOKEN, "Invalid refresh token")

        record = self._ledger.find_by_token(refresh_token)
        if record is None:
            logger.warning("Refresh token not found in ledger (user_id=%s)", payload.user_id)
            raise AuthError(ErrorKind.INVALID_TOKEN, "Invalid refresh token")

        now = self._clock()
        if as_utc(record.expires_at) <= now:
            self._ledger.delete_by_id(record.id)
            logger.info("Expired refresh token removed (user_id=%s)", payload.user_id)
            raise AuthError(ErrorKind.TOKEN_EXPIRED)

        user = self._users.get(payload.user_id)
        if user is None:
            logger.warning("Refresh failed: user no longer exists (user_id=%s)", payload.user_id)
            raise AuthError(ErrorKind.USER_NOT_FOUND)

        access_token = self._codec.issue_access_token(user)
        new_refresh_token = self._codec.issue_refresh_token(user)
        self._ledger.rotate(record.id, user.id, new_refresh_token, self._codec.refresh_expiry(now))

        logger.info("Tokens refreshed successfully (user_id=%s)", user.id)
        return TokenPair(access_token=access_token, refresh_token=new_refresh_token)

    def logout(self, refresh_token: str) -> bool:
        """Revoke `refresh_token`. True if a ledger record was removed; never fails for unknown tokens."""
        removed = self._ledger.delete_by_token(refresh_token)
        logger.info("User logged out (revoked=%s)", bool(removed))
        return bool(removed)

    def profile(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise AuthError(ErrorKind.USER_NOT_FOUND)
        return user

    def _issue_and_store(self, user: User) -> TokenPair:
        pair = TokenPair(
            access_token=self._codec.issue_access_token(user),
            refresh_token=self._codec.issue_refresh_token(user),
        )
        self._ledger.store(user.id, pair.refresh_token, self._codec.refresh_expiry(self._clock()))
        return pair
