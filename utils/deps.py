from typing import Annotated, Callable
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from core.exceptions import AuthenticationException, RateLimitedException
from middleware.rate_limiter import RateLimiter, RateLimitConfig
from models.users import User
from services.session_service import SessionService
from utils.cookies import ACCESS_COOKIE_NAME
from utils.logger import get_logger

logger = get_logger(__name__)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter

rate_limiter_dependency = Annotated[RateLimiter, Depends(get_rate_limiter)]


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def rate_limit(scope: str, config: RateLimitConfig, message: str = "Too many requests. Please try again later.") -> Callable:
    """
    Dependency factory enforcing a preset per client IP, keyed "<scope>:<ip>".

    Usage:
        @router.post("/login", dependencies=[Depends(rate_limit("login", AUTH_RATE_LIMIT))])
    """
    def enforce(request: Request, limiter: rate_limiter_dependency) -> None:
        key = f"{scope}:{get_client_ip(request)}"
        result = limiter.check_config(key, config)
        if not result.allowed:
            logger.warning("Rate limit exceeded", extra={"rate_limit_key": key})
            raise RateLimitedException(result.reset_at, message)

    return enforce


def get_current_user(request: Request, db: db_dependency) -> User:
    user = SessionService.get_current_user(request.cookies.get(ACCESS_COOKIE_NAME), db)
    if user is None:
        raise AuthenticationException("Not authenticated")
    return user

user_dependency = Annotated[User, Depends(get_current_user)]
