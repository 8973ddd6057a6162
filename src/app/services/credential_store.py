"""
Credential Store

Registration, credential verification with lockout, and password changes.
Every method runs inside a Unit of Work opened by the caller; nothing here
commits.
"""

import asyncio
import logging
import math
from typing import Optional

from src.app.services.password_hasher import IPasswordHasher
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from src.domain.entities import User
from src.domain.errors import DuplicateKeyError
from src.domain.lockout_policy import is_locked, lock_duration
from src.domain.result import Error, Result, Return

logger = logging.getLogger(__name__)

PASSWORD_HISTORY_SIZE = 5

INVALID_CREDENTIALS = Error("INVALID_CREDENTIALS", "Invalid credentials")


class CredentialStore:
    """
    Owns user credentials.

    Business Rules:
    - Plaintext passwords are hashed before anything is persisted
    - Locked accounts are rejected before the hasher is invoked
    - Each failed verification increments the counter and may lock the account
    - A successful verification resets the counter and clears the lock
    - A new password may not match the current one or the last 5
    """

    def __init__(
        self,
        uow: UnitOfWork,
        hasher: IPasswordHasher,
        history_size: int = PASSWORD_HISTORY_SIZE,
    ):
        self.uow = uow
        self.hasher = hasher
        self.history_size = history_size

    async def register(self, username: str, email: str, password: str) -> Result[User]:
        email = email.strip().lower()
        username = username.strip()

        existing = await self.uow.users.get_by_username_or_email(username, email)
        if existing is not None:
            logger.warning("Registration rejected: username or email already taken")
            return Return.err(Error("DUPLICATE_USER", "User already exists"))

        hashed = await asyncio.to_thread(self.hasher.hash, password)
        if hashed.is_err():
            return Return.err(hashed.error)

        now = utc_now()
        user = User(
            username=username,
            email=email,
            password_hash=hashed.value,
            password_changed_at=now,
            created_at=now,
        )
        try:
            user = await self.uow.users.create(user)
        except DuplicateKeyError:
            # Lost a race against a concurrent registration
            return Return.err(Error("DUPLICATE_USER", "User already exists"))

        logger.info(f"User registered: {user.id}")
        return Return.ok(user)

    async def find_user(self, identifier: str) -> Optional[User]:
        identifier = identifier.strip()
        if "@" in identifier:
            return await self.uow.users.get_by_email(identifier.lower())
        return await self.uow.users.get_by_username(identifier)

    async def verify_credentials(self, identifier: str, password: str) -> Result[User]:
        """
        Check a credential pair against lockout state and the stored hash.

        Returns:
            Result with the User on match, or Error:
            - ACCOUNT_LOCKED (details.retry_after in seconds)
            - INVALID_CREDENTIALS (unknown identifier or wrong password)
            details.user_id is set whenever the identifier resolved to a user;
            callers must not pass it on to the client.
        """
        user = await self.find_user(identifier)
        if user is None:
            # Equalise timing with the known-user path
            await asyncio.to_thread(self.hasher.verify_dummy, password)
            return Return.err(INVALID_CREDENTIALS)

        now = utc_now()
        if is_locked(user.locked_until, now):
            retry_after = max(1, math.ceil((user.locked_until - now).total_seconds()))
            logger.warning(f"Login attempt on locked account {user.id}")
            return Return.err(
                Error(
                    "ACCOUNT_LOCKED",
                    f"Account locked. Try again in {retry_after} seconds",
                    {"retry_after": retry_after, "user_id": str(user.id)},
                )
            )

        verified = await asyncio.to_thread(
            self.hasher.verify, user.password_hash, password
        )
        if verified.is_err():
            logger.error(f"Unreadable password hash for user {user.id}")

        if verified.is_err() or not verified.value:
            attempts = await self.uow.users.increment_failed_attempts(user.id)
            duration = lock_duration(attempts)
            if duration:
                await self.uow.users.set_locked_until(user.id, now + duration)
                logger.warning(
                    f"Account {user.id} locked for {duration} after {attempts} failed attempts"
                )
            return Return.err(
                Error(
                    INVALID_CREDENTIALS.code,
                    INVALID_CREDENTIALS.message,
                    {"user_id": str(user.id)},
                )
            )

        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login_at = now
        if self.hasher.needs_rehash(user.password_hash):
            rehashed = await asyncio.to_thread(self.hasher.hash, password)
            if rehashed.is_ok():
                user.password_hash = rehashed.value
                logger.info(f"Password hash upgraded for user {user.id}")
        await self.uow.users.update(user)
        return Return.ok(user)

    async def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> Result[None]:
        """
        Replace the password of a user.

        Returns:
            Result with None, or Error:
            - CURRENT_PASSWORD_MISMATCH
            - SAME_AS_CURRENT
            - PASSWORD_REUSED (matches one of the last history_size passwords)
        """
        if not await self._matches(user.password_hash, current_password):
            logger.warning(f"Invalid current password for user: {user.id}")
            return Return.err(
                Error("CURRENT_PASSWORD_MISMATCH", "Current password is incorrect")
            )

        if new_password == current_password:
            return Return.err(
                Error(
                    "SAME_AS_CURRENT",
                    "New password must be different from current password",
                )
            )

        for previous_hash in user.password_history or []:
            if await self._matches(previous_hash, new_password):
                logger.warning(f"Password reuse attempt for user: {user.id}")
                return Return.err(
                    Error(
                        "PASSWORD_REUSED",
                        "Password has been used before, please choose a different password",
                    )
                )

        hashed = await asyncio.to_thread(self.hasher.hash, new_password)
        if hashed.is_err():
            return Return.err(hashed.error)

        history = list(user.password_history or []) + [user.password_hash]
        user.password_history = history[-self.history_size:]
        user.password_hash = hashed.value
        user.password_changed_at = utc_now()
        user.failed_login_attempts = 0
        user.locked_until = None
        await self.uow.users.update(user)

        logger.info(f"Password changed for user: {user.id}")
        return Return.ok(None)

    async def _matches(self, password_hash: str, plaintext: str) -> bool:
        verified = await asyncio.to_thread(self.hasher.verify, password_hash, plaintext)
        return verified.is_ok() and verified.value
