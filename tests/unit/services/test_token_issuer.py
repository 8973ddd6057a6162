from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from src.api.utils.jwt import verify_jwt
from src.app.services.token_issuer import TokenIssuer, hash_refresh_token
from src.domain.base import utc_now
from src.domain.entities import RefreshToken, RevokedReason, User


@pytest.fixture
def user():
    return User(id=uuid4(), username="alice", email="alice@x.com", password_hash="hash")


def _record(user, token="t" * 80, ip="10.0.0.1", **kwargs):
    now = utc_now()
    fields = dict(
        token_hash=hash_refresh_token(token),
        user_id=user.id,
        ip=ip,
        created_at=now,
        expires_at=now + timedelta(days=7),
    )
    fields.update(kwargs)
    return RefreshToken(**fields)


@pytest.mark.asyncio
async def test_issue_stores_only_the_token_digest(mock_uow, user, jwt_keys):
    issuer = TokenIssuer(mock_uow)

    tokens = await issuer.issue(user, "10.0.0.1")

    stored = mock_uow.refresh_tokens.create.await_args.args[0]
    assert len(tokens.refresh_token) == 80
    assert stored.token_hash == hash_refresh_token(tokens.refresh_token)
    assert stored.token_hash != tokens.refresh_token
    assert stored.expires_at - stored.created_at == timedelta(days=7)
    mock_uow.refresh_tokens.delete_expired.assert_awaited_once()

    claims = jwt.decode(tokens.access_token, jwt_keys.public_pem, algorithms=["RS256"])
    assert claims["sub"] == str(user.id)
    assert claims["username"] == "alice"
    assert claims["ip"] == "10.0.0.1"
    assert claims["type"] == "access"
    assert claims["exp"] - claims["iat"] == 15 * 60
    assert tokens.expires_in == 15 * 60


@pytest.mark.asyncio
async def test_access_token_ip_binding(mock_uow, user):
    tokens = await TokenIssuer(mock_uow).issue(user, "10.0.0.1")

    assert verify_jwt(tokens.access_token) is not None
    assert verify_jwt(tokens.access_token, request_ip="10.0.0.1") is not None
    assert verify_jwt(tokens.access_token, request_ip="10.9.9.9") is None
    assert verify_jwt(tokens.access_token + "x") is None


@pytest.mark.asyncio
async def test_rotate_unknown_token(mock_uow):
    result = await TokenIssuer(mock_uow).rotate("nope", "10.0.0.1")

    assert result.error.code == "TOKEN_INVALID"


@pytest.mark.asyncio
async def test_rotate_revokes_old_and_issues_new(mock_uow, user):
    record = _record(user)
    mock_uow.refresh_tokens.get_by_token_hash.return_value = record
    mock_uow.users.get_by_id.return_value = user

    result = await TokenIssuer(mock_uow).rotate("t" * 80, "10.0.0.1")

    assert result.is_ok()
    rotated_user, tokens = result.value
    assert rotated_user is user
    assert tokens.refresh_token != "t" * 80
    mock_uow.refresh_tokens.revoke_if_active.assert_awaited_once_with(
        record.id, RevokedReason.rotation
    )


@pytest.mark.asyncio
async def test_rotate_already_rotated_token_is_reuse(mock_uow, user):
    mock_uow.refresh_tokens.get_by_token_hash.return_value = _record(
        user, is_revoked=True, revoked_reason=RevokedReason.rotation.value
    )

    result = await TokenIssuer(mock_uow).rotate("t" * 80, "10.0.0.1")

    assert result.error.code == "TOKEN_REUSED"
    assert result.error.details["user_id"] == str(user.id)
    mock_uow.refresh_tokens.create.assert_not_called()


@pytest.mark.asyncio
async def test_rotate_logged_out_token_is_invalid(mock_uow, user):
    mock_uow.refresh_tokens.get_by_token_hash.return_value = _record(
        user, is_revoked=True, revoked_reason=RevokedReason.logout.value
    )

    result = await TokenIssuer(mock_uow).rotate("t" * 80, "10.0.0.1")

    assert result.error.code == "TOKEN_INVALID"


@pytest.mark.asyncio
async def test_rotate_expired_token(mock_uow, user):
    mock_uow.refresh_tokens.get_by_token_hash.return_value = _record(
        user, expires_at=utc_now() - timedelta(seconds=1)
    )

    result = await TokenIssuer(mock_uow).rotate("t" * 80, "10.0.0.1")

    assert result.error.code == "TOKEN_EXPIRED"


@pytest.mark.asyncio
async def test_rotate_orphaned_token(mock_uow, user):
    mock_uow.refresh_tokens.get_by_token_hash.return_value = _record(user)

    result = await TokenIssuer(mock_uow).rotate("t" * 80, "10.0.0.1")

    assert result.error.code == "TOKEN_INVALID"
    mock_uow.refresh_tokens.revoke_if_active.assert_not_called()


@pytest.mark.asyncio
async def test_rotate_losing_the_race_is_reuse(mock_uow, user):
    mock_uow.refresh_tokens.get_by_token_hash.return_value = _record(user)
    mock_uow.users.get_by_id.return_value = user
    mock_uow.refresh_tokens.revoke_if_active.return_value = False

    result = await TokenIssuer(mock_uow).rotate("t" * 80, "10.0.0.1")

    assert result.error.code == "TOKEN_REUSED"
    mock_uow.refresh_tokens.create.assert_not_called()


@pytest.mark.asyncio
async def test_ip_mismatch_revokes_every_session_when_binding_enabled(mock_uow, user):
    mock_uow.refresh_tokens.get_by_token_hash.return_value = _record(user, ip="10.0.0.1")
    mock_uow.refresh_tokens.revoke_all_by_user_id.return_value = 3

    result = await TokenIssuer(mock_uow, enforce_ip_binding=True).rotate("t" * 80, "10.6.6.6")

    assert result.error.code == "TOKEN_IP_MISMATCH"
    assert result.error.details["revoked_count"] == 3
    mock_uow.refresh_tokens.revoke_all_by_user_id.assert_awaited_once_with(
        user.id, RevokedReason.security_ip_mismatch
    )


@pytest.mark.asyncio
async def test_ip_mismatch_ignored_when_binding_disabled(mock_uow, user):
    mock_uow.refresh_tokens.get_by_token_hash.return_value = _record(user, ip="10.0.0.1")
    mock_uow.users.get_by_id.return_value = user

    result = await TokenIssuer(mock_uow, enforce_ip_binding=False).rotate("t" * 80, "10.6.6.6")

    assert result.is_ok()
    mock_uow.refresh_tokens.revoke_all_by_user_id.assert_not_called()


@pytest.mark.asyncio
async def test_revoke_returns_record_only_when_state_changed(mock_uow, user):
    record = _record(user)
    issuer = TokenIssuer(mock_uow)

    assert await issuer.revoke("t" * 80, RevokedReason.logout) is None

    mock_uow.refresh_tokens.get_by_token_hash.return_value = record
    assert await issuer.revoke("t" * 80, RevokedReason.logout) is record

    mock_uow.refresh_tokens.revoke_if_active.return_value = False
    assert await issuer.revoke("t" * 80, RevokedReason.logout) is None
