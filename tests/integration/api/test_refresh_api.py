from uuid import UUID

import pytest
from sqlmodel import select

from src.domain.entities import AuditEvent, RefreshToken, RevokedReason


@pytest.mark.asyncio
async def test_refresh_rotates_token(client, registered):
    response = await client.post(
        "/auth/refresh", json={"refresh_token": registered["refresh_token"]}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["refresh_token"] != registered["refresh_token"]
    assert body["session_id"] != registered["session_id"]

    again = await client.post("/auth/refresh", json={"refresh_token": body["refresh_token"]})
    assert again.status_code == 200


@pytest.mark.asyncio
async def test_reused_refresh_token_is_rejected(client, db_session, registered):
    first = await client.post(
        "/auth/refresh", json={"refresh_token": registered["refresh_token"]}
    )
    second = await client.post(
        "/auth/refresh", json={"refresh_token": registered["refresh_token"]}
    )

    assert first.status_code == 200
    assert second.status_code == 401
    assert second.json()["error"] == {
        "code": "REFRESH_FAILED",
        "message": "Please log in again",
    }

    events = (await db_session.exec(select(AuditEvent))).all()
    assert "token_reuse_detected" in [e.action for e in events]

    old = (
        await db_session.exec(
            select(RefreshToken)
            .where(RefreshToken.id == UUID(registered["session_id"]))
            .execution_options(populate_existing=True)
        )
    ).one()
    assert old.is_revoked
    assert old.revoked_reason == RevokedReason.rotation.value


@pytest.mark.asyncio
async def test_unknown_refresh_token(client):
    response = await client.post("/auth/refresh", json={"refresh_token": "f" * 80})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "REFRESH_FAILED"


@pytest.mark.asyncio
async def test_logout_is_idempotent(client, registered):
    token = {"refresh_token": registered["refresh_token"]}

    first = await client.post("/auth/logout", json=token)
    second = await client.post("/auth/logout", json=token)
    refreshed = await client.post("/auth/refresh", json=token)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert refreshed.status_code == 401
