from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..core.constants import DEFAULT_TOKEN_TTL_SECONDS
from ..core.exceptions import AuthenticationError


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    token_version: int


class TokenService:
    """Issues and verifies signed bearer tokens carrying ``{sub, tv}``."""

    def __init__(self, secret: str, *, algorithm: str = "HS256", ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS):
        self._secret = secret
        self._algorithm = algorithm
        self._ttl_seconds = int(ttl_seconds)

    def issue(self, *, user_id: int, token_version: int, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(tz=timezone.utc)
        payload = {
            "sub": str(user_id),
            "tv": int(token_version),
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self._ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Not authorized, token expired")
        except jwt.InvalidTokenError:
            raise AuthenticationError("Not authorized, token failed")

        try:
            return TokenClaims(user_id=int(payload["sub"]), token_version=int(payload.get("tv", 0)))
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Not authorized, token failed")
