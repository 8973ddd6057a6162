from uuid import uuid4

import pyotp
import pytest

from src.adapter.services.in_memory_rate_limiter import InMemoryRateLimiter
from src.api.utils.jwt import generate_mfa_challenge
from src.app.services.mfa_manager import MfaManager, hash_backup_code
from src.app.use_cases.auth import VerifyMfaCommand, VerifyMfaUseCase
from src.domain.entities import BackupCode, MfaEnabled, MfaMethod, User
from tests.utils.code_sender import CapturingCodeSender

SECRET = "JBSWY3DPEHPK3PXP"


@pytest.fixture
def user():
    user = User(id=uuid4(), username="alice", email="alice@x.com", password_hash="hash")
    user.apply_mfa(
        MfaEnabled(
            method=MfaMethod.totp,
            secret=SECRET,
            backup_codes=[BackupCode(code_hash=hash_backup_code("deadbeef"))],
        )
    )
    return user


@pytest.fixture
def use_case(mock_uow, user):
    mock_uow.users.get_by_id.return_value = user
    return VerifyMfaUseCase(mock_uow, MfaManager(CapturingCodeSender(), InMemoryRateLimiter()))


def _command(user, **kwargs):
    return VerifyMfaCommand(
        user_id=str(user.id),
        challenge_token=kwargs.pop("challenge_token", generate_mfa_challenge(user.id)),
        ip="10.0.0.1",
        **kwargs,
    )


@pytest.mark.asyncio
async def test_totp_code_completes_login(use_case, mock_uow, user):
    result = await use_case.execute(_command(user, code=pyotp.TOTP(SECRET).now()))

    assert result.is_ok()
    assert result.value.access_token
    mock_uow.refresh_tokens.create.assert_awaited_once()
    assert mock_uow.audit_events.create.await_args.args[0].action == "mfa_verified"


@pytest.mark.asyncio
async def test_backup_code_is_consumed(use_case, mock_uow, user):
    first = await use_case.execute(_command(user, backup_code="deadbeef"))
    second = await use_case.execute(_command(user, backup_code="deadbeef"))

    assert first.is_ok()
    assert second.error.code == "INVALID_MFA_CODE"
    assert user.backup_codes[0]["used"] is True


@pytest.mark.asyncio
async def test_wrong_code_does_not_touch_lockout(use_case, mock_uow, user):
    result = await use_case.execute(_command(user, code="000000"))

    assert result.error.code == "INVALID_MFA_CODE"
    mock_uow.users.increment_failed_attempts.assert_not_called()
    assert mock_uow.audit_events.create.await_args.args[0].action == "mfa_verify_failed"


@pytest.mark.asyncio
async def test_challenge_for_another_user_is_rejected(use_case, user):
    result = await use_case.execute(
        _command(user, code="123456", challenge_token=generate_mfa_challenge(uuid4()))
    )

    assert result.error.code == "MFA_CHALLENGE_INVALID"


@pytest.mark.asyncio
async def test_garbage_challenge_is_rejected(use_case, user):
    result = await use_case.execute(_command(user, code="123456", challenge_token="garbage"))

    assert result.error.code == "MFA_CHALLENGE_INVALID"


@pytest.mark.asyncio
async def test_code_required(use_case, user):
    result = await use_case.execute(_command(user))

    assert result.error.code == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_backup_code_taken_by_concurrent_request_fails(use_case, mock_uow, user):
    mock_uow.users.save_mfa.return_value = False

    result = await use_case.execute(_command(user, backup_code="deadbeef"))

    assert result.error.code == "INVALID_MFA_CODE"
    mock_uow.refresh_tokens.create.assert_not_called()
    assert mock_uow.audit_events.create.await_args.args[0].action == "mfa_verify_failed"


@pytest.mark.asyncio
async def test_totp_login_does_not_write_mfa_state(use_case, mock_uow, user):
    result = await use_case.execute(_command(user, code=pyotp.TOTP(SECRET).now()))

    assert result.is_ok()
    mock_uow.users.save_mfa.assert_not_called()


@pytest.mark.asyncio
async def test_challenge_stops_accepting_codes_after_max_attempts(use_case, mock_uow, user):
    token = generate_mfa_challenge(user.id)

    for _ in range(5):
        result = await use_case.execute(_command(user, code="000000", challenge_token=token))
        assert result.error.code == "INVALID_MFA_CODE"

    # Even the right code is refused once the challenge is spent
    result = await use_case.execute(
        _command(user, code=pyotp.TOTP(SECRET).now(), challenge_token=token)
    )
    assert result.error.code == "MFA_RATE_LIMITED"

    fresh = await use_case.execute(_command(user, code=pyotp.TOTP(SECRET).now()))
    assert fresh.is_ok()
