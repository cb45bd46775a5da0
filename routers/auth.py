from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette import status
from utils.deps import db_dependency, user_dependency, rate_limit
from schemas.auth_schemas import (CreateUserRequest, LoginRequest, AuthResponse, CurrentUserResponse,
MessageResponse, UserResponse)
from services.session_service import SessionService
from middleware.rate_limiter import AUTH_RATE_LIMIT
from middleware.error_handler import error_response
from utils.cookies import ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME, set_auth_cookies, clear_auth_cookies
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
    dependencies=[Depends(rate_limit("register", AUTH_RATE_LIMIT, "Too many registration attempts. Please try again later."))]
)
def register(body: CreateUserRequest, response: Response, db: db_dependency):
    """
    Create an account and sign it in (sets both auth cookies).
    """
    user, tokens = SessionService.register(body, db)
    set_auth_cookies(response, tokens.access_token, tokens.refresh_token)

    return {"user": UserResponse.model_validate(user), "message": "Registration successful"}


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(rate_limit("login", AUTH_RATE_LIMIT, "Too many login attempts. Please try again later."))]
)
def login(body: LoginRequest, response: Response, db: db_dependency):
    """
    Sign in. Any other session of the same account stops refreshing.
    """
    user, tokens = SessionService.login(body.email, body.password, db)
    set_auth_cookies(response, tokens.access_token, tokens.refresh_token)

    return {"user": UserResponse.model_validate(user), "message": "Login successful"}


@router.post(
    "/refresh",
    response_model=MessageResponse,
    dependencies=[Depends(rate_limit("refresh", AUTH_RATE_LIMIT, "Too many refresh attempts. Please try again later."))]
)
def refresh(request: Request, response: Response, db: db_dependency):
    """
    Rotate the refresh cookie into a new access + refresh pair.
    """
    tokens = SessionService.rotate(request.cookies.get(REFRESH_COOKIE_NAME), db)
    set_auth_cookies(response, tokens.access_token, tokens.refresh_token)

    return {"message": "Tokens refreshed successfully"}


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, db: db_dependency):
    """
    Revoke every session of the user and clear the auth cookies.

    Cookies are cleared even when revocation fails.
    """
    response = JSONResponse({"message": "Logged out successfully"})
    try:
        SessionService.logout(
            request.cookies.get(ACCESS_COOKIE_NAME),
            request.cookies.get(REFRESH_COOKIE_NAME),
            db
        )
    except Exception:
        logger.error("Logout revocation failed", exc_info=True)
        response = error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")

    clear_auth_cookies(response)
    return response


@router.get("/me", response_model=CurrentUserResponse)
def get_me(user: user_dependency):
    return {"user": UserResponse.model_validate(user)}
