"""
Token codec:
- Signs short-lived access tokens and long-lived refresh tokens (PyJWT)
- Access and refresh tokens use two independent secrets
- Verification never raises; failures are logged and reported as None
- compute_expiry parses lifetimes such as "15m" or "7d"
"""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import jwt

from utils.clock import utcnow
from utils.errors import AuthError, ErrorKind

if TYPE_CHECKING:
    from api.config import AuthSettings

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"

_DURATION_RE = re.compile(r"([0-9]+)([smhd])")
_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}


def parse_duration(duration: str) -> timedelta:
    """Parse "<integer><unit>" with unit in s, m, h, d."""
    match = _DURATION_RE.fullmatch(duration) if isinstance(duration, str) else None
    if not match:
        raise AuthError(
            ErrorKind.INVALID_DURATION_FORMAT,
            f"Invalid duration {duration!r}: expected <integer><s|m|h|d>",
        )
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit])


def compute_expiry(duration: str, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + parse_duration(duration)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID)."""
    return str(uuid.uuid4())


@dataclass(frozen=True)
class TokenPayload:
    """Identity sealed inside an access or refresh token."""

    user_id: int
    email: str
    role: str
    issued_at: datetime
    expires_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"userId": self.user_id, "email": self.email, "role": self.role}


def _role_value(role) -> str:
    return getattr(role, "value", role)


class TokenCodec:
    def __init__(self, settings: "AuthSettings", clock: Callable[[], datetime] = utcnow):
        self._settings = settings
        self._clock = clock
        self._secrets = {
            ACCESS: (settings.access_secret, settings.access_lifetime),
            REFRESH: (settings.refresh_secret, settings.refresh_lifetime),
        }

    def issue_access_token(self, user) -> str:
        return self._issue(user, ACCESS)

    def issue_refresh_token(self, user) -> str:
        return self._issue(user, REFRESH)

    def verify_access_token(self, token: str) -> Optional[TokenPayload]:
        return self._verify(token, ACCESS)

    def verify_refresh_token(self, token: str) -> Optional[TokenPayload]:
        return self._verify(token, REFRESH)

    def refresh_expiry(self, now: Optional[datetime] = None) -> datetime:
        """When a refresh token issued at `now` stops being valid in the ledger."""
        return compute_expiry(self._settings.refresh_lifetime, now or self._clock())

    def _issue(self, user, token_type: str) -> str:
        secret, lifetime = self._secrets[token_type]
        now = self._clock()
        payload = {
            "userId": user.id,
            "email": user.email,
            "role": _role_value(user.role),
            "type": token_type,
            "jti": generate_jti(),
            "iat": int(now.timestamp()),
            "exp": int(compute_expiry(lifetime, now).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=self._settings.algorithm)

    def _verify(self, token: str, token_type: str) -> Optional[TokenPayload]:
        secret, _ = self._secrets[token_type]
        try:
            decoded = jwt.decode(
                token,
                secret,
                algorithms=[self._settings.algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("%s token verification failed: token expired", token_type)
            return None
        except jwt.InvalidTokenError as exc:
            logger.warning("%s token verification failed: %s", token_type, exc)
            return None

        if decoded.get("type") != token_type:
            logger.warning("%s token verification failed: wrong token type", token_type)
            return None
        try:
            return TokenPayload(
                user_id=int(decoded["userId"]),
                email=decoded["email"],
                role=decoded["role"],
                issued_at=datetime.fromtimestamp(decoded["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(decoded["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("%s token verification failed: malformed claims (%s)", token_type, exc)
            return None
