"""Signed access/refresh tokens (HS256 JWTs).

Access and refresh tokens use distinct secrets and lifetimes, and carry a
``type`` claim so one can never stand in for the other.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import jwt

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_ACCESS_TOKEN_DAYS, DEFAULT_REFRESH_TOKEN_DAYS, JWT_ALGORITHM
from ..core.enums import TokenType
from ..core.exceptions import AuthenticationFailed, InvalidToken, TokenExpired


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    access_ttl: timedelta = timedelta(days=DEFAULT_ACCESS_TOKEN_DAYS)
    refresh_ttl: timedelta = timedelta(days=DEFAULT_REFRESH_TOKEN_DAYS)


class TokenIssuer:
    def __init__(self, config: TokenConfig):
        if config.access_secret == config.refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets")
        self._config = config

    @property
    def access_ttl(self) -> timedelta:
        return self._config.access_ttl

    def _encode(self, account_id: str, token_type: TokenType, secret: str, ttl: timedelta,
                now: Optional[datetime]) -> str:
        issued = now or now_utc()
        payload = {
            "id": str(account_id),
            "type": token_type.value,
            "iat": issued,
            "exp": issued + ttl,
        }
        return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)

    def issue_access(self, account_id: str, *, now: Optional[datetime] = None) -> str:
        return self._encode(account_id, TokenType.ACCESS, self._config.access_secret, self._config.access_ttl, now)

    def issue_refresh(self, account_id: str, *, now: Optional[datetime] = None) -> str:
        return self._encode(account_id, TokenType.REFRESH, self._config.refresh_secret, self._config.refresh_ttl, now)

    def verify_access(self, token: str) -> str:
        """Return the account id of a valid access token.

        Expired -> TokenExpired; bad signature, malformed or wrong type ->
        InvalidToken; any other verification failure -> AuthenticationFailed.
        """

        try:
            claims = jwt.decode(token, self._config.access_secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.InvalidTokenError:
            raise InvalidToken()
        except Exception:
            raise AuthenticationFailed()
        return self._subject(claims, TokenType.ACCESS)

    def verify_refresh(self, token: str) -> str:
        """Return the account id of a valid refresh token; every failure is InvalidToken."""

        try:
            claims = jwt.decode(token, self._config.refresh_secret, algorithms=[JWT_ALGORITHM])
        except jwt.InvalidTokenError:
            raise InvalidToken("Invalid refresh token")
        return self._subject(claims, TokenType.REFRESH)

    @staticmethod
    def _subject(claims: dict[str, Any], expected: TokenType) -> str:
        if claims.get("type") != expected.value or not claims.get("id"):
            raise InvalidToken("Invalid token type")
        return str(claims["id"])
