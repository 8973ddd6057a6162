from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, inspect, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.user_repository import IUserRepository
from src.domain.entities import User
from src.domain.errors import DuplicateKeyError

MFA_COLUMNS = (
    "mfa_state",
    "mfa_method",
    "mfa_secret",
    "mfa_destination",
    "mfa_code_expires_at",
    "backup_codes",
)


class UserRepository(IUserRepository):
    """User repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        stmt = select(User).where(User.id == user_id).execution_options(
            populate_existing=True
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address (case-insensitive)"""
        stmt = select(User).where(func.lower(User.email) == email.lower()).execution_options(
            populate_existing=True
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_username(self, username: str) -> Optional[User]:
        """Get user by username"""
        stmt = select(User).where(User.username == username).execution_options(
            populate_existing=True
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_username_or_email(
        self, username: str, email: str, exclude_id: Optional[UUID] = None
    ) -> Optional[User]:
        """Get any user (other than exclude_id) holding the username or the email"""
        stmt = select(User).where(
            or_(User.username == username, func.lower(User.email) == email.lower())
        )
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        result = await self.session.exec(stmt)
        return result.first()

    async def create(self, user: User) -> User:
        """Create a new user"""
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateKeyError(str(e.orig)) from e
        await self.session.refresh(user)
        return user

    async def update(self, user: User) -> User:
        """Update existing user (not the MFA columns, see save_mfa)"""
        state = inspect(user)
        if any(state.attrs[name].history.has_changes() for name in MFA_COLUMNS):
            raise ValueError("MFA columns must be written with save_mfa")
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateKeyError(str(e.orig)) from e
        await self.session.refresh(user)
        return user

    async def save_mfa(self, user: User) -> bool:
        """Compare-and-swap on mfa_version; loser gets the stored MFA state"""
        values = {name: getattr(user, name) for name in MFA_COLUMNS}
        with self.session.no_autoflush:
            stmt = (
                update(User)
                .where(User.id == user.id, User.mfa_version == user.mfa_version)
                .values(**values, mfa_version=User.mfa_version + 1)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            saved = result.rowcount == 1
            if saved:
                values["mfa_version"] = user.mfa_version + 1
            else:
                columns = [getattr(User, name) for name in MFA_COLUMNS + ("mfa_version",)]
                row = (
                    await self.session.execute(select(*columns).where(User.id == user.id))
                ).one()
                values = row._asdict()

        # Accept the values as stored so commit does not write them again
        for name, value in values.items():
            set_committed_value(user, name, value)
        await self.session.flush()
        return saved

    async def increment_failed_attempts(self, user_id: UUID) -> int:
        """Atomically add one failed login and return the new count"""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(failed_login_attempts=User.failed_login_attempts + 1)
            .returning(User.failed_login_attempts)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        count = result.scalar_one()
        await self.session.flush()
        return count

    async def set_locked_until(self, user_id: UUID, locked_until: datetime) -> None:
        """Set the lock expiry for a user"""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(locked_until=locked_until)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.flush()
