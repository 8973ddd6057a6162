import pytest
from unittest.mock import AsyncMock, MagicMock


def _passthrough(entity):
    return entity


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    # Mock repositories
    uow.users = MagicMock()
    uow.users.get_by_id = AsyncMock(return_value=None)
    uow.users.get_by_email = AsyncMock(return_value=None)
    uow.users.get_by_username = AsyncMock(return_value=None)
    uow.users.get_by_username_or_email = AsyncMock(return_value=None)
    uow.users.create = AsyncMock(side_effect=_passthrough)
    uow.users.update = AsyncMock(side_effect=_passthrough)
    uow.users.save_mfa = AsyncMock(return_value=True)
    uow.users.increment_failed_attempts = AsyncMock(return_value=1)
    uow.users.set_locked_until = AsyncMock()

    uow.refresh_tokens = MagicMock()
    uow.refresh_tokens.create = AsyncMock(side_effect=_passthrough)
    uow.refresh_tokens.get_by_id = AsyncMock(return_value=None)
    uow.refresh_tokens.get_by_token_hash = AsyncMock(return_value=None)
    uow.refresh_tokens.revoke_if_active = AsyncMock(return_value=True)
    uow.refresh_tokens.revoke_all_by_user_id = AsyncMock(return_value=0)
    uow.refresh_tokens.get_active_by_user_id = AsyncMock(return_value=[])
    uow.refresh_tokens.get_all_by_user_id = AsyncMock(return_value=[])
    uow.refresh_tokens.delete_expired = AsyncMock(return_value=0)

    uow.audit_events = MagicMock()
    uow.audit_events.create = AsyncMock(side_effect=_passthrough)

    return uow
