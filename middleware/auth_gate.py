"""
Request gate: decides allow / redirect / transparent refresh for every request.

Each request is gated on its own. An expired access token gets exactly one
in-process rotation attempt; on success the original request continues with
the new access token and the response carries the rotated cookies.
"""

from http.cookies import SimpleCookie
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from core.exceptions import AuthenticationException
from services.session_service import SessionService
from services.token_service import TokenService, TokenKind
from utils.cookies import ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME, set_auth_cookies, clear_auth_cookies
from utils.logger import get_logger

logger = get_logger(__name__)

LOGIN_PATH = "/login"
HOME_PATH = "/dashboard"

PUBLIC_PATHS = {"/", "/login", "/register", "/health", "/docs", "/redoc", "/openapi.json"}
PUBLIC_PREFIXES = ("/auth/", "/static/", "/docs/")
AUTH_PAGES = {"/login", "/register"}


def is_public_path(path: str) -> bool:
    if path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES):
        return True
    # Static assets: favicon.ico, robots.txt, ...
    return "." in path.rsplit("/", 1)[-1]


def replace_request_cookies(request: Request, replacements: dict[str, str]) -> None:
    """
    Rewrites the Cookie header of the in-flight request so downstream
    handlers read the replaced values.

    All replacements go into one header rewrite: Starlette caches both the
    parsed headers and the parsed cookies on the request object.
    """
    cookies = dict(request.cookies)
    cookies.update(replacements)

    jar = SimpleCookie()
    for key, val in cookies.items():
        jar[key] = val
    header_value = "; ".join(morsel.OutputString() for morsel in jar.values())

    headers = [(k, v) for k, v in request.scope["headers"] if k != b"cookie"]
    headers.append((b"cookie", header_value.encode("latin-1")))
    request.scope["headers"] = headers

    request.__dict__.pop("_headers", None)
    request.__dict__.pop("_cookies", None)


class AuthGateMiddleware(BaseHTTPMiddleware):
    """
    1. Public paths pass; login/register pages redirect home when the access
       cookie is still valid.
    2. No access cookie -> redirect to login.
    3. Valid access cookie -> pass.
    4. Invalid/expired access cookie -> one rotation with the refresh cookie:
       success forwards the request and sets new cookies, failure redirects
       to login.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if is_public_path(path):
            if path in AUTH_PAGES:
                claims = TokenService.verify(request.cookies.get(ACCESS_COOKIE_NAME), TokenKind.ACCESS)
                if claims is not None:
                    return RedirectResponse(HOME_PATH, status_code=303)
            return await call_next(request)

        access_token = request.cookies.get(ACCESS_COOKIE_NAME)
        if not access_token:
            return RedirectResponse(LOGIN_PATH, status_code=303)

        if TokenService.verify(access_token, TokenKind.ACCESS) is not None:
            return await call_next(request)

        refresh_token = request.cookies.get(REFRESH_COOKIE_NAME)
        tokens = None
        if refresh_token:
            # Hashing and DB access are blocking
            tokens = await run_in_threadpool(self._try_rotate, request, refresh_token)

        if tokens is None:
            response = RedirectResponse(LOGIN_PATH, status_code=303)
            clear_auth_cookies(response)
            return response

        replace_request_cookies(request, {
            ACCESS_COOKIE_NAME: tokens.access_token,
            REFRESH_COOKIE_NAME: tokens.refresh_token
        })

        response = await call_next(request)
        set_auth_cookies(response, tokens.access_token, tokens.refresh_token)
        return response

    @staticmethod
    def _try_rotate(request: Request, refresh_token: str):
        db = request.app.state.session_factory()
        try:
            return SessionService.rotate(refresh_token, db)
        except AuthenticationException:
            return None
        except SQLAlchemyError:
            logger.error(
                "Session rotation failed in request gate",
                extra={"path": request.url.path},
                exc_info=True
            )
            return None
        finally:
            db.close()
