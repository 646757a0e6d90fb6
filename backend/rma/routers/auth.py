"""Auth endpoints."""
import ipaddress
import logging

import redis
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from redis.exceptions import RedisError
from sqlalchemy.orm import Session

from ..auth import (
    ROLE_NAMES,
    create_access_token,
    get_current_user,
    get_role_permissions,
    verify_password,
)
from ..config import settings
from ..database import get_db
from ..models import User
from ..schemas import LoginRequest, LoginResponse, LoginUser, MeResponse, RoleInfo

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)


_redis_client = None


def _get_redis():
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def _login_user(user: User) -> LoginUser:
    return LoginUser(
        id=user.id,
        username=user.username,
        business_id=str(user.business_id) if user.business_id is not None else None,
        role=RoleInfo(id=user.role_id, name=ROLE_NAMES.get(user.role_id, "Unknown")),
    )


def _get_client_ip(request: Request) -> str:
    if settings.TRUST_PROXY_HEADERS:
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            try:
                ipaddress.ip_address(real_ip)
                return real_ip
            except ValueError:
                pass

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For may contain a list: client, proxy1, proxy2
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass

    if request.client:
        return request.client.host
    return "unknown"


def _set_no_store(response: Response) -> None:
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"


def _incr_with_ttl(key: str, ttl_seconds: int) -> tuple[int, int]:
    """
    Increment a Redis counter and ensure it has an expiry.
    Returns (value, ttl_remaining_seconds).
    """
    r = _get_redis()
    value = r.incr(key)
    if value == 1:
        r.expire(key, ttl_seconds)
    ttl = r.ttl(key)
    if ttl is None or ttl < 0:
        ttl = ttl_seconds
    return int(value), int(ttl)


def _enforce_login_rate_limits(*, request: Request, username: str | None) -> None:
    if not settings.AUTH_RATE_LIMIT_ENABLED:
        return
    ip = _get_client_ip(request)
    try:
        attempts, ttl = _incr_with_ttl(f"auth:rl:login:ip:{ip}", 60)
        if attempts > settings.AUTH_LOGIN_IP_LIMIT_PER_MINUTE:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many login attempts. Try again later.",
                headers={"Retry-After": str(ttl)},
            )

        if username:
            r = _get_redis()
            lock_ttl = r.ttl(f"auth:lock:login:user:{username.lower()}")
            if lock_ttl and lock_ttl > 0:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail="Account temporarily locked due to failed logins. Try again later.",
                    headers={"Retry-After": str(int(lock_ttl))},
                )
    except RedisError:
        # Fail open if Redis is down.
        logger.exception("Redis error during login rate limiting (fail-open)")


def _register_login_failure(*, username: str | None) -> None:
    # Counted per username whether or not the account exists.
    if not settings.AUTH_RATE_LIMIT_ENABLED or not username:
        return
    try:
        username_key = username.lower()
        fails, _ = _incr_with_ttl(
            f"auth:fail:login:user:{username_key}",
            settings.AUTH_LOGIN_USER_LOCK_SECONDS,
        )
        if fails >= settings.AUTH_LOGIN_USER_FAIL_THRESHOLD:
            _get_redis().set(
                f"auth:lock:login:user:{username_key}",
                "1",
                ex=settings.AUTH_LOGIN_USER_LOCK_SECONDS,
            )
    except RedisError:
        logger.exception("Redis error during login failure tracking (fail-open)")


def _clear_login_failures(*, username: str | None) -> None:
    if not settings.AUTH_RATE_LIMIT_ENABLED or not username:
        return
    try:
        r = _get_redis()
        username_key = username.lower()
        r.delete(f"auth:fail:login:user:{username_key}")
        r.delete(f"auth:lock:login:user:{username_key}")
    except RedisError:
        logger.exception("Redis error during login failure cleanup (ignored)")


@router.post("/login", response_model=LoginResponse)
def login(payload: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    """Login with username and password."""
    _set_no_store(response)

    # Case-sensitive match.
    username = payload.username or ""
    _enforce_login_rate_limits(request=request, username=username or None)

    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(payload.password, user.password_hash):
        _register_login_failure(username=username or None)
        logger.info("Failed login for %r from %s", username, _get_client_ip(request))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    _clear_login_failures(username=username)
    return LoginResponse(token=create_access_token(user), user=_login_user(user))


@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)):
    """Current user with role and static permissions."""
    return MeResponse(
        **_login_user(current_user).model_dump(),
        permissions=get_role_permissions(current_user.role_id),
    )
