from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.argon2_password_hasher import Argon2PasswordHasher
from src.adapter.services.in_memory_rate_limiter import InMemoryRateLimiter
from src.adapter.services.logging_code_sender import LoggingCodeSender
from src.adapter.services.smtp_code_sender import SmtpCodeSender
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.api.utils.jwt import verify_jwt
from src.app.services.code_sender import ICodeSender
from src.app.services.mfa_manager import MfaManager
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.rate_limiter import IRateLimiter
from src.domain.result import Error

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

security = HTTPBearer()


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


@lru_cache(maxsize=1)
def get_password_hasher() -> IPasswordHasher:
    return Argon2PasswordHasher(
        memory_cost=ApplicationConfig.ARGON2_MEMORY_COST,
        time_cost=ApplicationConfig.ARGON2_TIME_COST,
        parallelism=ApplicationConfig.ARGON2_PARALLELISM,
        hash_len=ApplicationConfig.ARGON2_HASH_LENGTH,
    )


@lru_cache(maxsize=1)
def get_rate_limiter() -> IRateLimiter:
    return InMemoryRateLimiter(max_entries=ApplicationConfig.RATE_LIMIT_CACHE_SIZE)


@lru_cache(maxsize=1)
def get_code_sender() -> ICodeSender:
    fallback = LoggingCodeSender()
    if not ApplicationConfig.SMTP_HOST:
        return fallback
    return SmtpCodeSender(
        host=ApplicationConfig.SMTP_HOST,
        port=ApplicationConfig.SMTP_PORT,
        sender=ApplicationConfig.SMTP_FROM,
        fallback=fallback,
        username=ApplicationConfig.SMTP_USER,
        password=ApplicationConfig.SMTP_PASSWORD,
        use_tls=ApplicationConfig.SMTP_USE_TLS,
    )


def get_mfa_manager(
    code_sender: ICodeSender = Depends(get_code_sender),
    rate_limiter: IRateLimiter = Depends(get_rate_limiter),
) -> MfaManager:
    return MfaManager(
        code_sender,
        rate_limiter,
        issuer_name=ApplicationConfig.SERVICE_NAME,
        code_ttl=timedelta(minutes=ApplicationConfig.MFA_CODE_TTL_MINUTES),
        backup_code_count=ApplicationConfig.MFA_BACKUP_CODE_COUNT,
        deliveries_per_hour=ApplicationConfig.MFA_DELIVERIES_PER_HOUR,
        verify_attempts=ApplicationConfig.MFA_VERIFY_MAX_ATTEMPTS,
        verify_window=timedelta(minutes=ApplicationConfig.MFA_CHALLENGE_TTL_MINUTES),
    )


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def limit_sensitive_endpoint(
    request: Request, rate_limiter: IRateLimiter = Depends(get_rate_limiter)
) -> None:
    """
    Per-IP request budget for credential endpoints (register, login).

    Raises:
        ClientError: 429 once the budget of the current window is spent
    """
    ip = get_client_ip(request)
    allowed = await rate_limiter.hit(
        f"sensitive:{ip}",
        ApplicationConfig.SENSITIVE_RATE_LIMIT,
        timedelta(minutes=ApplicationConfig.SENSITIVE_RATE_WINDOW_MINUTES),
    )
    if not allowed:
        raise ClientError(
            Error("RATE_LIMITED", "Too many requests, please try again later"),
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        )


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Dependency to extract and verify JWT token from Authorization header.

    Args:
        request: Incoming request (client address for IP binding)
        credentials: Bearer token from Authorization header

    Returns:
        Decoded JWT payload containing sub, username, email

    Raises:
        HTTPException: 401 if token is invalid, expired or bound to another IP
    """
    token = credentials.credentials
    request_ip = (
        get_client_ip(request) if ApplicationConfig.ENFORCE_REFRESH_IP_BINDING else None
    )
    payload = verify_jwt(token, request_ip=request_ip)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    return payload
