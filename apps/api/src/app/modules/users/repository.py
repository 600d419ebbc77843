"""
User Repository

Database operations for user lookup and creation.
"""

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        email: str,
        login: str,
        password_hash: str,
        role: UserRole,
        cpf: str | None = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user record.

        The session is flushed, not committed; callers own the transaction.
        """
        user = User(
            name=name,
            email=email,
            login=login,
            password_hash=password_hash,
            role=role,
            cpf=cpf,
            is_active=is_active,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.login} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        result = await db.execute(
            select(User).where(User.id == user_id, User.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_login(db: AsyncSession, login: str) -> User | None:
        result = await db.execute(
            select(User).where(User.login == login, User.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active_by_id_and_roles(
        db: AsyncSession,
        user_id: UUID,
        roles: Iterable[UserRole],
    ) -> User | None:
        """
        Get an active, non-deleted user holding one of `roles`.

        Used to resolve the owner an administrator names when creating a
        request or uploading a document on someone's behalf.
        """
        result = await db.execute(
            select(User).where(
                User.id == user_id,
                User.role.in_(list(roles)),
                User.is_active.is_(True),
                User.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def login_exists(db: AsyncSession, login: str) -> bool:
        return await UserRepository.get_by_login(db, login) is not None
