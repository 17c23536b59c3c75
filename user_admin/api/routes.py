"""HTTP route definitions for the user admin service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis import Redis, RedisError

from .dependencies import current_account, get_admin_service, get_service
from .schemas import (
    AuthResponse,
    BlockResponse,
    CountResponse,
    DeleteResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserIdsRequest,
    UserResponse,
)
from ..config import get_settings
from ..domain.account import Account
from ..domain.admin import AdminService
from ..domain.service import AccountService, normalize_email
from ..errors import AccountError, RateLimitedError
from ..security.rate_limiter import (
    RateLimiter,
    RedisSlidingWindowRateLimiter,
    SlidingWindowRateLimiter,
)

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
users_router = APIRouter(prefix="/api/users", tags=["users"])

settings = get_settings()


def _build_rate_limiter() -> RateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            client = Redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("rate limiter configured for redis backend at %s", settings.redis_url)
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except RedisError as exc:
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


rate_limiter = _build_rate_limiter()


def _enforce_rate_limit(key: str) -> None:
    if not rate_limiter.allow(key):
        raise RateLimitedError()


@auth_router.post("/register", response_model=AuthResponse)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Create an unverified account and sign it in."""
    _enforce_rate_limit(f"register:{normalize_email(payload.email)}")
    result = service.register(payload.name, payload.email, payload.password)
    return AuthResponse.from_result(result)


@auth_router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    _enforce_rate_limit(f"login:{normalize_email(payload.email)}")
    result = service.login(payload.email, payload.password)
    return AuthResponse.from_result(result)


@auth_router.get("/verify/{token}", response_model=MessageResponse)
def verify_email(
    token: str,
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Consume an email verification token."""
    return MessageResponse(message=service.verify_email(token))


@users_router.get("", response_model=list[UserResponse])
def list_users(
    caller: Account = Depends(current_account),
    service: AccountService = Depends(get_service),
) -> list[UserResponse]:
    return [UserResponse.from_domain(account) for account in service.list_accounts()]


@users_router.get("/me", response_model=UserResponse)
def get_current_user(caller: Account = Depends(current_account)) -> UserResponse:
    """Return the caller's own account as re-read by the access gate."""
    return UserResponse.from_domain(caller)


@users_router.post("/block", response_model=BlockResponse)
def block_users(
    payload: UserIdsRequest,
    caller: Account = Depends(current_account),
    admin: AdminService = Depends(get_admin_service),
) -> BlockResponse:
    result = admin.block(caller, payload.ids)
    return BlockResponse(
        message=f"Blocked {result.count} user(s)",
        count=result.count,
        self_blocked=result.self_affected,
    )


@users_router.post("/unblock", response_model=CountResponse)
def unblock_users(
    payload: UserIdsRequest,
    caller: Account = Depends(current_account),
    admin: AdminService = Depends(get_admin_service),
) -> CountResponse:
    result = admin.unblock(caller, payload.ids)
    return CountResponse(message=f"Unblocked {result.count} user(s)", count=result.count)


@users_router.delete("", response_model=DeleteResponse)
def delete_users(
    payload: UserIdsRequest,
    caller: Account = Depends(current_account),
    admin: AdminService = Depends(get_admin_service),
) -> DeleteResponse:
    result = admin.delete(caller, payload.ids)
    return DeleteResponse(
        message=f"Deleted {result.count} user(s)",
        count=result.count,
        self_deleted=result.self_affected,
    )


@users_router.delete("/unverified", response_model=DeleteResponse)
def delete_unverified_users(
    caller: Account = Depends(current_account),
    admin: AdminService = Depends(get_admin_service),
) -> DeleteResponse:
    result = admin.delete_unverified(caller)
    return DeleteResponse(
        message=f"Deleted {result.count} unverified user(s)",
        count=result.count,
        self_deleted=result.self_affected,
    )


async def _account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request body", "error": "ValidationError"},
    )


def install_routes(app: FastAPI) -> None:
    """Mount the routers and the error mapping on ``app``."""
    app.include_router(auth_router)
    app.include_router(users_router)
    app.add_exception_handler(AccountError, _account_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
