from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.core.security import get_password_hash, verify_password
from storefront.db.session import Database
from storefront.models.user import User
from storefront.services.exceptions import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    UserNotFoundError,
)

logger = get_logger(__name__)


async def get_by_username(db: AsyncSession, username: str) -> User | None:
    stmt = select(User).where(User.username == username).limit(1)
    result = await db.execute(stmt)
    return result.scalars().first()


class UserAccounts:
    def __init__(self, database: Database):
        self._database = database

    async def signup(self, username: str, password: str) -> User:
        try:
            async with self._database.transaction() as db:
                if await get_by_username(db, username):
                    raise DuplicateUsernameError("Username already registered")
                user = User(username=username, hashed_password=get_password_hash(password))
                db.add(user)
                await db.flush()
                await db.refresh(user)
        except IntegrityError as exc:
            # two signups for the same name raced past the lookup
            raise DuplicateUsernameError("Username already registered") from exc
        logger.info("User created", extra={"user_id": user.id, "username": user.username})
        return user

    async def authenticate(self, username: str, password: str) -> User:
        async with self._database.transaction() as db:
            user = await get_by_username(db, username)
            if not user or not verify_password(password, user.hashed_password):
                raise InvalidCredentialsError("Invalid username or password")
            user.last_login_at = datetime.now(timezone.utc)
            await db.flush()
            await db.refresh(user)
        return user

    async def get_user(self, user_id: int) -> User:
        async with self._database.read_transaction() as db:
            user = await db.get(User, user_id)
        if user is None:
            raise UserNotFoundError("User not found")
        return user

    async def list_users(self) -> list[User]:
        async with self._database.read_transaction() as db:
            result = await db.execute(select(User).order_by(User.id))
            return list(result.scalars().all())
