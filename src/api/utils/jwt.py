import logging
from datetime import UTC, datetime, timedelta
from typing import Optional, Tuple
from uuid import UUID, uuid4

from jose import ExpiredSignatureError, JWTError, jwt

from config import ApplicationConfig
from src.api.utils.keys import get_key_pair

logger = logging.getLogger(__name__)

ALGORITHM = "RS256"
ACCESS_TOKEN_TYPE = "access"
MFA_CHALLENGE_TYPE = "mfa_challenge"


def _encode(payload: dict) -> str:
    return jwt.encode(payload, get_key_pair().private_pem, algorithm=ALGORITHM)


def generate_access_token(user, ip: str) -> Tuple[str, int]:
    """
    Generate JWT access token

    Args:
        user: User entity (id, username, email)
        ip: Client address the token is issued to

    Returns:
        (JWT token string signed with RS256, lifetime in seconds)
    """
    now = datetime.now(UTC)
    lifetime = timedelta(minutes=ApplicationConfig.ACCESS_TOKEN_TTL_MINUTES)
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
        "ip": ip,
        "type": ACCESS_TOKEN_TYPE,
        "iss": ApplicationConfig.JWT_ISSUER,
        "jti": str(uuid4()),
        "iat": now,
        "exp": now + lifetime,
    }
    return _encode(payload), int(lifetime.total_seconds())


def generate_mfa_challenge(user_id: UUID) -> str:
    """
    Generate a short-lived token proving the password step succeeded.

    It is only accepted by MFA verification, never as an access token.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "jti": str(uuid4()),
        "type": MFA_CHALLENGE_TYPE,
        "iss": ApplicationConfig.JWT_ISSUER,
        "iat": now,
        "exp": now + timedelta(minutes=ApplicationConfig.MFA_CHALLENGE_TTL_MINUTES),
    }
    return _encode(payload)


def _decode(token: str, expected_type: str) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token,
            get_key_pair().public_pem,
            algorithms=[ALGORITHM],
            issuer=ApplicationConfig.JWT_ISSUER,
        )
    except ExpiredSignatureError:
        logger.info("Token expired")
        return None
    except JWTError as e:
        logger.warning(f"JWT error: {e}")
        return None

    if payload.get("type") != expected_type:
        logger.warning(f"Unexpected token type: {payload.get('type')}")
        return None
    return payload


def verify_jwt(token: str, request_ip: Optional[str] = None) -> Optional[dict]:
    """
    Verify and decode an access token

    Args:
        token: JWT token string
        request_ip: When given, the token's ip claim must match it

    Returns:
        Decoded payload dict or None if invalid
    """
    payload = _decode(token, ACCESS_TOKEN_TYPE)
    if payload is None:
        return None

    token_ip = payload.get("ip")
    if request_ip and token_ip and token_ip != "unknown" and token_ip != request_ip:
        logger.warning(f"Token IP mismatch: {token_ip} vs {request_ip}")
        return None
    return payload


def verify_mfa_challenge(token: str) -> Optional[dict]:
    return _decode(token, MFA_CHALLENGE_TYPE)


def get_public_key_pem() -> str:
    return get_key_pair().public_pem
