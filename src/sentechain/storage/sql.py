"""SQL user store (async SQLAlchemy)."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sentechain.storage.base import DuplicateUserError, StorageError, UserRecord, UserStore
from sentechain.storage.database import get_session_factory, ping_db
from sentechain.storage.models import User

logger = logging.getLogger(__name__)


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        username=user.username,
        wallet_address=user.wallet_address,
        email=user.email,
        phone=user.phone,
        created_at=user.created_at,
        last_login=user.last_login,
    )


class SqlUserStore(UserStore):
    """User store backed by the configured database."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    @property
    def name(self) -> str:
        return "database"

    def _session(self) -> AsyncSession:
        factory = self._session_factory or get_session_factory()
        return factory()

    async def _first(self, stmt) -> Optional[UserRecord]:
        try:
            async with self._session() as session:
                result = await session.execute(stmt)
                user = result.scalar_one_or_none()
                return _to_record(user) if user else None
        except SQLAlchemyError as e:
            raise StorageError(f"User lookup failed: {e}") from e

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        return await self._first(select(User).where(User.email == email))

    async def get_by_phone(self, phone: str) -> Optional[UserRecord]:
        return await self._first(select(User).where(User.phone == phone))

    async def get_by_wallet(self, wallet_address: str) -> Optional[UserRecord]:
        return await self._first(
            select(User).where(func.lower(User.wallet_address) == wallet_address.lower())
        )

    async def get_by_username(self, username: str) -> Optional[UserRecord]:
        return await self._first(select(User).where(User.username == username))

    async def create(
        self,
        username: str,
        wallet_address: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> UserRecord:
        user = User(
            id=uuid.uuid4().hex,
            username=username,
            wallet_address=wallet_address,
            email=email,
            phone=phone,
            created_at=datetime.now(timezone.utc),
            last_login=datetime.now(timezone.utc),
        )
        try:
            async with self._session() as session:
                session.add(user)
                await session.commit()
        except IntegrityError as e:
            raise DuplicateUserError(f"User already exists: {username}") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create user: {e}") from e

        logger.info(f"Created user {username} ({wallet_address})")
        return _to_record(user)

    async def touch_login(self, user_id: str) -> Optional[UserRecord]:
        try:
            async with self._session() as session:
                user = await session.get(User, user_id)
                if user is None:
                    return None
                user.last_login = datetime.now(timezone.utc)
                await session.commit()
                return _to_record(user)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update login time: {e}") from e

    async def search(self, query: str, limit: int = 10) -> list[UserRecord]:
        needle = query.lower()
        stmt = (
            select(User)
            .where(
                or_(
                    func.lower(User.username).contains(needle, autoescape=True),
                    func.lower(User.wallet_address).contains(needle, autoescape=True),
                )
            )
            .order_by(User.created_at)
            .limit(limit)
        )
        try:
            async with self._session() as session:
                result = await session.execute(stmt)
                return [_to_record(u) for u in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StorageError(f"User search failed: {e}") from e

    async def ping(self) -> bool:
        if self._session_factory is not None:
            async with self._session() as session:
                await session.execute(select(1))
            return True
        await ping_db()
        return True
