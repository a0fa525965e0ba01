from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from storefront.core.config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


class TokenError(Exception):
    """Raised when a bearer token cannot be trusted."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class TokenService:
    """Issues and verifies the stateless access tokens.

    The signing key and its rotation fallbacks come from the settings object
    the service is built with.
    """

    def __init__(self, settings: Settings):
        self._secret = settings.SECRET_KEY
        self._fallbacks = list(settings.SECRET_KEY_FALLBACKS)
        self._algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES

    def _candidate_secrets(self) -> list[str]:
        seen: list[str] = []
        for item in [self._secret, *self._fallbacks]:
            if item and item not in seen:
                seen.append(item)
        return seen

    def _ensure_header_algorithm(self, token: str) -> None:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise TokenError("Malformed token") from exc
        if header.get("alg") != self._algorithm:
            raise TokenError("Token signed with unexpected algorithm")

    def create_access_token(self, user_id: int, expires_minutes: int | None = None) -> str:
        now = _now()
        payload: dict[str, Any] = {
            "sub": str(user_id),
            "type": "access",
            "exp": now + timedelta(minutes=expires_minutes or self.expire_minutes),
            "iat": int(now.timestamp()),
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def decode_access_token(self, token: str) -> dict[str, Any]:
        self._ensure_header_algorithm(token)
        data: dict[str, Any] | None = None
        for secret in self._candidate_secrets():
            try:
                data = jwt.decode(token, secret, algorithms=[self._algorithm])
                break
            except ExpiredSignatureError as exc:
                raise TokenError("Token has expired") from exc
            except JWTError:
                continue
        if data is None:
            raise TokenError("Invalid token")
        if data.get("type") != "access":
            raise TokenError("Invalid token type")
        return data

    def user_id_from_token(self, token: str) -> int:
        payload = self.decode_access_token(token)
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenError("User ID not found in token") from exc
