"""Shopper identity resolution.

A request is attributed to exactly one owner: the authenticated user when a
valid bearer token is present, otherwise an anonymous session token that the
client round-trips in a header. The result is resolved once at the HTTP
boundary; downstream code only looks at ``owner_key`` and ``user_id``.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Union

from storefront.core.config import Settings
from storefront.services.exceptions import InvalidSessionTokenError, NoIdentityError

SESSION_TOKEN_PREFIX = "sess_"


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: int

    kind = "user"
    session_id = None
    minted = False

    @property
    def owner_key(self) -> str:
        return f"user:{self.user_id}"


@dataclass(frozen=True)
class AnonymousSession:
    token: str
    minted: bool = False

    kind = "session"
    user_id = None

    @property
    def owner_key(self) -> str:
        return f"session:{self.token}"

    @property
    def session_id(self) -> str:
        return self.token


Identity = Union[AuthenticatedUser, AnonymousSession]


class IdentityResolver:
    def __init__(self, settings: Settings):
        self._token_bytes = settings.SESSION_TOKEN_BYTES
        self._max_length = settings.SESSION_TOKEN_MAX_LENGTH

    def mint_session_token(self) -> str:
        return SESSION_TOKEN_PREFIX + secrets.token_hex(self._token_bytes)

    def _clean_session_token(self, raw: str) -> str:
        token = raw.strip()
        if not token or len(token) > self._max_length or not token.isprintable():
            raise InvalidSessionTokenError("Invalid session ID")
        return token

    def resolve(
        self,
        user_id: int | None,
        session_token: str | None,
        *,
        mint: bool = False,
    ) -> Identity:
        """Pick the authoritative identity for a request.

        An authenticated user always wins over a session token. With
        ``mint=True`` a missing token is replaced by a fresh one flagged
        ``minted`` so the caller can hand it back to the client.
        """
        if user_id is not None:
            return AuthenticatedUser(user_id=user_id)
        if session_token is not None:
            return AnonymousSession(token=self._clean_session_token(session_token))
        if mint:
            return AnonymousSession(token=self.mint_session_token(), minted=True)
        raise NoIdentityError("Authentication or session ID required")

    def resolve_optional(self, user_id: int | None, session_token: str | None) -> Identity | None:
        """Like ``resolve`` for read paths, where no identity is not an error."""
        try:
            return self.resolve(user_id, session_token)
        except NoIdentityError:
            return None
