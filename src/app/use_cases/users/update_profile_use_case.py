"""
Update Profile Use Case

Changes the username and/or email of the authenticated user.
"""

import logging
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth.dtos import UserInfo
from src.app.use_cases.auth.validation import validate_email_address, validate_username
from src.domain.entities import AuditEvent
from src.domain.errors import DuplicateKeyError
from src.domain.result import Error, Result, Return

logger = logging.getLogger(__name__)


class UpdateProfileCommand(BaseModel):
    """Omitted fields keep their current value"""

    user_id: UUID
    username: Optional[str] = None
    email: Optional[str] = None


def _taken(field: str) -> Error:
    if field == "username":
        return Error("DUPLICATE_USER", "Username is already taken", {"field": "username"})
    return Error("DUPLICATE_USER", "Email is already registered", {"field": "email"})


class UpdateProfileUseCase:
    """
    Business Rules:
    - Username and email follow the registration rules
    - Email is stored lower-cased
    - A username or email held by another account is DUPLICATE_USER;
      keeping one's own value is not a conflict
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @guard_store
    async def execute(self, command: UpdateProfileCommand) -> Result[UserInfo]:
        username = command.username.strip() if command.username else None
        email = command.email.strip().lower() if command.email else None

        invalid = (username is not None and validate_username(username)) or (
            email is not None and validate_email_address(email)
        )
        if invalid:
            return Return.err(invalid)

        async with self.uow:
            user = await self.uow.users.get_by_id(command.user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            changes = {}
            if username is not None and username != user.username:
                changes["username"] = username
            if email is not None and email != user.email:
                changes["email"] = email
            if not changes:
                return Return.ok(UserInfo.from_user(user))

            existing = await self.uow.users.get_by_username_or_email(
                changes.get("username", user.username),
                changes.get("email", user.email),
                exclude_id=user.id,
            )
            if existing is not None:
                field = "username" if existing.username == changes.get("username") else "email"
                logger.warning(f"Profile update of {user.id} rejected: {field} taken")
                return Return.err(_taken(field))

            for field, value in changes.items():
                setattr(user, field, value)
            try:
                await self.uow.users.update(user)
            except DuplicateKeyError:
                # Lost a race against another account claiming the same value
                return Return.err(_taken(next(iter(changes))))

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="profile_update",
                    event_metadata={"fields": sorted(changes)},
                )
            )

            await self.uow.commit()

        logger.info(f"Profile updated for user: {user.id}")
        return Return.ok(UserInfo.from_user(user))
