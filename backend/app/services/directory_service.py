from typing import Protocol

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.user import User
from app.schemas.user import UserIdentity
from app.utils.email_utils import normalize_email


class UserDirectory(Protocol):
    async def search(self, query: str) -> list[UserIdentity]: ...

    async def resolve(self, email: str) -> UserIdentity | None: ...


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _identity(user: User) -> UserIdentity:
    return UserIdentity(id=user.id, name=user.display_name, email=user.email)


class SqlUserDirectory:
    """User directory backed by the local ``users`` table."""

    def __init__(self, db: AsyncSession, limit: int | None = None):
        self.db = db
        self.limit = limit or settings.user_search_limit

    async def search(self, query: str) -> list[UserIdentity]:
        pattern = f"%{_escape_like(query.strip())}%"
        result = await self.db.execute(
            select(User)
            .where(or_(
                User.display_name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            ))
            .order_by(User.display_name)
            .limit(self.limit)
        )
        return [_identity(u) for u in result.scalars().all()]

    async def resolve(self, email: str) -> UserIdentity | None:
        result = await self.db.execute(select(User).where(User.email == normalize_email(email)))
        user = result.scalar_one_or_none()
        return _identity(user) if user else None
