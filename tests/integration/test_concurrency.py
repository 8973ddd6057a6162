"""
Races between requests that each hold their own database session.

SQLite serialises writers, so the interleaving is the one a real server
sees: both requests read first, then queue up on the write.
"""

import asyncio
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.orm import sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.services.in_memory_rate_limiter import InMemoryRateLimiter
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.utils.jwt import generate_mfa_challenge
from src.app.services.mfa_manager import MfaManager, hash_backup_code
from src.app.use_cases.auth import (
    LoginCommand,
    LoginUseCase,
    RefreshTokenUseCase,
    RegisterCommand,
    RegisterUseCase,
    VerifyMfaCommand,
    VerifyMfaUseCase,
)
from src.domain.base import utc_now
from src.domain.entities import BackupCode, MfaEnabled, MfaMethod, RefreshToken, User
from tests.utils.code_sender import CapturingCodeSender

IP = "10.0.0.1"


@pytest.fixture
def Session(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
def mfa():
    return MfaManager(CapturingCodeSender(), InMemoryRateLimiter())


@pytest_asyncio.fixture
async def alice(Session, fast_hasher):
    async with Session() as session:
        registered = await RegisterUseCase(SqlAlchemyUnitOfWork(session), fast_hasher).execute(
            RegisterCommand(username="alice", email="alice@x.com", password="P@ssw0rd1", ip=IP)
        )
    return registered.value


async def _with_mfa(Session, user_id, config):
    async with Session() as session:
        user = await session.get(User, UUID(user_id))
        user.apply_mfa(config)
        session.add(user)
        await session.commit()


async def _race(Session, request):
    """Run request twice at once, each call on its own session"""

    async def run():
        async with Session() as session:
            return await request(SqlAlchemyUnitOfWork(session))

    return await asyncio.gather(run(), run())


@pytest.mark.asyncio
async def test_refresh_token_rotates_once(Session, alice):
    results = await _race(
        Session, lambda uow: RefreshTokenUseCase(uow).execute(alice.refresh_token, IP)
    )

    assert sorted(r.is_ok() for r in results) == [False, True]
    assert [r.error.code for r in results if r.is_err()] == ["TOKEN_REUSED"]

    async with Session() as session:
        tokens = (await session.exec(select(RefreshToken))).all()
    assert sum(1 for t in tokens if not t.is_revoked) == 1


@pytest.mark.asyncio
async def test_concurrent_wrong_passwords_are_all_counted(Session, alice, fast_hasher, mfa):
    command = LoginCommand(identifier="alice@x.com", password="Wr0ng!pass", ip=IP)

    results = await _race(
        Session, lambda uow: LoginUseCase(uow, fast_hasher, mfa).execute(command)
    )

    assert [r.error.code for r in results] == ["INVALID_CREDENTIALS"] * 2
    async with Session() as session:
        user = (await session.exec(select(User))).one()
    assert user.failed_login_attempts == 2


@pytest.mark.asyncio
async def test_backup_code_is_accepted_once(Session, alice, mfa):
    user_id = alice.user.id
    await _with_mfa(
        Session,
        user_id,
        MfaEnabled(
            method=MfaMethod.totp,
            secret="JBSWY3DPEHPK3PXP",
            backup_codes=[BackupCode(code_hash=hash_backup_code("deadbeef"))],
        ),
    )

    async def verify(uow):
        return await VerifyMfaUseCase(uow, mfa).execute(
            VerifyMfaCommand(
                user_id=user_id,
                challenge_token=generate_mfa_challenge(user_id),
                backup_code="deadbeef",
                ip=IP,
            )
        )

    results = await _race(Session, verify)

    assert sorted(r.is_ok() for r in results) == [False, True]
    assert [r.error.code for r in results if r.is_err()] == ["INVALID_MFA_CODE"]
    async with Session() as session:
        tokens = (await session.exec(select(RefreshToken))).all()
    # Registration session plus the single MFA login
    assert len(tokens) == 2


@pytest.mark.asyncio
async def test_email_code_is_accepted_once(Session, alice, mfa):
    user_id = alice.user.id
    await _with_mfa(
        Session,
        user_id,
        MfaEnabled(
            method=MfaMethod.email,
            secret="424242",
            destination="alice@x.com",
            code_expires_at=utc_now() + mfa.code_ttl,
        ),
    )

    async def verify(uow):
        return await VerifyMfaUseCase(uow, mfa).execute(
            VerifyMfaCommand(
                user_id=user_id,
                challenge_token=generate_mfa_challenge(user_id),
                code="424242",
                ip=IP,
            )
        )

    results = await _race(Session, verify)

    assert sorted(r.is_ok() for r in results) == [False, True]
    async with Session() as session:
        user = (await session.exec(select(User))).one()
    assert user.mfa_secret != "424242"
    assert user.mfa_version == 1
