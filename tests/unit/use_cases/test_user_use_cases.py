from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.app.use_cases.auth import PurgeExpiredTokensUseCase
from src.app.use_cases.users import (
    ExportAccountDataUseCase,
    GetAuditEventsUseCase,
    GetProfileUseCase,
    UpdateProfileCommand,
    UpdateProfileUseCase,
)
from src.domain.base import utc_now
from src.domain.entities import AuditEvent, RefreshToken, RevokedReason, User
from src.domain.errors import DuplicateKeyError


@pytest.mark.asyncio
async def test_profile_exposes_public_fields_only(mock_uow):
    user = User(
        id=uuid4(),
        username="alice",
        email="alice@x.com",
        password_hash="$argon2id$secret",
        password_history=["$argon2id$old"],
    )
    mock_uow.users.get_by_id.return_value = user

    result = await GetProfileUseCase(mock_uow).execute(user.id)

    data = result.value.model_dump()
    assert data["username"] == "alice"
    assert "password_hash" not in data
    assert "password_history" not in data
    assert "backup_codes" not in data
    assert "mfa_secret" not in data


@pytest.mark.asyncio
async def test_profile_of_missing_user(mock_uow):
    result = await GetProfileUseCase(mock_uow).execute(uuid4())

    assert result.error.code == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_audit_events_page(mock_uow):
    user_id = uuid4()
    event = AuditEvent(
        user_id=user_id,
        action="login",
        event_metadata={"ip": "10.0.0.1"},
        created_at=utc_now() - timedelta(minutes=1),
    )
    mock_uow.audit_events.get_by_user_paginated = AsyncMock(return_value=([event], "next"))

    result = await GetAuditEventsUseCase(mock_uow).execute(user_id, limit=1)

    assert result.value.next_cursor == "next"
    assert result.value.events[0].action == "login"
    assert result.value.events[0].metadata == {"ip": "10.0.0.1"}


@pytest.mark.asyncio
async def test_purge_expired_tokens(mock_uow):
    mock_uow.refresh_tokens.delete_expired.return_value = 7

    result = await PurgeExpiredTokensUseCase(mock_uow).execute()

    assert result.value.deleted_count == 7
    mock_uow.commit.assert_awaited_once()


@pytest.fixture
def alice(mock_uow):
    user = User(id=uuid4(), username="alice", email="alice@x.com", password_hash="hash")
    mock_uow.users.get_by_id.return_value = user
    return user


@pytest.mark.asyncio
async def test_update_profile_lowercases_email(mock_uow, alice):
    result = await UpdateProfileUseCase(mock_uow).execute(
        UpdateProfileCommand(user_id=alice.id, username="alice2", email="Alice.New@X.com")
    )

    assert result.value.username == "alice2"
    assert result.value.email == "alice.new@x.com"
    mock_uow.users.get_by_username_or_email.assert_awaited_once_with(
        "alice2", "alice.new@x.com", exclude_id=alice.id
    )
    mock_uow.users.update.assert_awaited_once_with(alice)
    event = mock_uow.audit_events.create.await_args.args[0]
    assert event.action == "profile_update"
    assert event.event_metadata == {"fields": ["email", "username"]}
    mock_uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_profile_keeping_own_values_is_a_no_op(mock_uow, alice):
    result = await UpdateProfileUseCase(mock_uow).execute(
        UpdateProfileCommand(user_id=alice.id, username="alice", email="ALICE@x.com")
    )

    assert result.value.email == "alice@x.com"
    mock_uow.users.update.assert_not_called()
    mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_update_profile_rejects_taken_username(mock_uow, alice):
    mock_uow.users.get_by_username_or_email.return_value = User(
        id=uuid4(), username="bob", email="bob@x.com", password_hash="hash"
    )

    result = await UpdateProfileUseCase(mock_uow).execute(
        UpdateProfileCommand(user_id=alice.id, username="bob")
    )

    assert result.error.code == "DUPLICATE_USER"
    assert result.error.message == "Username is already taken"
    assert alice.username == "alice"
    mock_uow.users.update.assert_not_called()


@pytest.mark.asyncio
async def test_update_profile_rejects_taken_email(mock_uow, alice):
    mock_uow.users.get_by_username_or_email.return_value = User(
        id=uuid4(), username="bob", email="bob@x.com", password_hash="hash"
    )

    result = await UpdateProfileUseCase(mock_uow).execute(
        UpdateProfileCommand(user_id=alice.id, email="bob@x.com")
    )

    assert result.error.code == "DUPLICATE_USER"
    assert result.error.details == {"field": "email"}


@pytest.mark.asyncio
async def test_update_profile_lost_unique_race(mock_uow, alice):
    mock_uow.users.update.side_effect = DuplicateKeyError("users.email")

    result = await UpdateProfileUseCase(mock_uow).execute(
        UpdateProfileCommand(user_id=alice.id, email="carol@x.com")
    )

    assert result.error.code == "DUPLICATE_USER"
    mock_uow.commit.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "command",
    [{"username": "al"}, {"username": "al@ce"}, {"email": "not-an-email"}],
)
async def test_update_profile_validates_fields(mock_uow, alice, command):
    result = await UpdateProfileUseCase(mock_uow).execute(
        UpdateProfileCommand(user_id=alice.id, **command)
    )

    assert result.error.code == "VALIDATION_ERROR"
    mock_uow.__aenter__.assert_not_called()


@pytest.mark.asyncio
async def test_export_includes_revoked_sessions(mock_uow, alice):
    now = utc_now()
    revoked = RefreshToken(
        token_hash="a" * 64,
        user_id=alice.id,
        ip="10.0.0.1",
        is_revoked=True,
        revoked_reason=RevokedReason.rotation.value,
        created_at=now - timedelta(hours=1),
        expires_at=now + timedelta(days=6),
    )
    active = RefreshToken(
        token_hash="b" * 64,
        user_id=alice.id,
        ip="10.0.0.1",
        created_at=now,
        expires_at=now + timedelta(days=7),
    )
    mock_uow.refresh_tokens.get_all_by_user_id.return_value = [active, revoked]

    result = await ExportAccountDataUseCase(mock_uow).execute(alice.id)

    export = result.value
    assert export.profile.username == "alice"
    assert [s.is_revoked for s in export.sessions] == [False, True]
    assert export.sessions[1].revoked_reason == "rotation"
    assert "token_hash" not in export.sessions[0].model_dump()
    assert mock_uow.audit_events.create.await_args.args[0].action == "account_export"


@pytest.mark.asyncio
async def test_export_of_missing_user(mock_uow):
    result = await ExportAccountDataUseCase(mock_uow).execute(uuid4())

    assert result.error.code == "USER_NOT_FOUND"
