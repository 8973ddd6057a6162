from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from .error import ClientError, ServerError
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from sqlmodel import SQLModel

    import src.domain.entities  # noqa: F401  (registers tables)
    from src.api.utils.keys import get_key_pair
    from src.app.use_cases.auth import PurgeExpiredTokensUseCase
    from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
    from src.depends import AsyncSessionLocal, engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    get_key_pair()

    async with AsyncSessionLocal() as session:
        result = await PurgeExpiredTokensUseCase(SqlAlchemyUnitOfWork(session)).execute()
    if result.is_err():
        logger.warning(f"Startup purge skipped: {result.error.code}")

    yield
    await engine.dispose()


async def handle_client_error(request: Request, exc: ClientError):
    error_dict = {"code": exc.base_error.code, "message": exc.base_error.message}
    logger.warning(f"Client error: {error_dict}")
    return JSONResponse(
        status_code=exc.status_code, content={"error": error_dict}, headers=exc.headers
    )


async def handle_server_error(request: Request, exc: ServerError):
    if exc.base_error.code == "STORE_UNAVAILABLE":
        message = exc.base_error.message
    else:
        message = "Internal server error"
    error_dict = {"code": exc.base_error.code, "message": message}
    logger.error(f"Server error: {exc.base_error.code}")
    return JSONResponse(status_code=exc.status_code, content={"error": error_dict})


def create_app(ApplicationConfig) -> FastAPI:
    app = FastAPI(title=ApplicationConfig.SERVICE_NAME, version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ApplicationConfig.CORS_ORIGINS,
        allow_credentials=ApplicationConfig.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from src.api.routes import auth, mfa, sessions, user

    app.include_router(auth.router, tags=["Authentication"])
    app.include_router(user.router, tags=["User"])
    app.include_router(sessions.router, tags=["Sessions"])
    app.include_router(mfa.router, tags=["MFA"])

    app.add_exception_handler(ClientError, handle_client_error)
    app.add_exception_handler(ServerError, handle_server_error)

    return app
