from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from core.config import settings
from core.exceptions import AuthenticationException, ConflictException
from models.users import User
from schemas.auth_schemas import CreateUserRequest
from services.auth_service import AuthService
from services.session_store import SessionStore
from services.token_service import TokenService, TokenKind
from utils.logger import get_logger

logger = get_logger(__name__)

INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class SessionService:
    """
    Login, registration, refresh-token rotation, logout and current-user lookup.

    Session chain states:
        Anonymous --login/register--> Active
        Active --valid access token--> Active
        Active --refresh matches a live record--> Active (rotated)
        Active --logout / refresh mismatch--> Anonymous

    Each transition commits once, so revoking old records and storing the
    new one are a single unit.
    """

    @staticmethod
    def issue_session(user: User, db: Session) -> TokenPair:
        """
        Signs a new access + refresh pair and stores the refresh token's hash.
        Does not commit.
        """
        access_token = TokenService.sign(TokenKind.ACCESS, user.id, user.email)
        refresh_token = TokenService.sign(TokenKind.REFRESH, user.id, user.email)

        expires_at = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        SessionStore.create_refresh_record(db, user.id, refresh_token, expires_at)

        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    @staticmethod
    def register(body: CreateUserRequest, db: Session) -> tuple[User, TokenPair]:
        try:
            user = AuthService.create_user(body, db)
            tokens = SessionService.issue_session(user, db)
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            db.rollback()
            logger.warning("Registration conflict on commit", extra={"email": body.email})
            raise ConflictException("An account with this email already exists")
        except Exception:
            db.rollback()
            raise

        db.refresh(user)
        logger.info("User registered", extra={"user_id": user.id, "email": user.email})
        return user, tokens

    @staticmethod
    def login(email: str, password: str, db: Session) -> tuple[User, TokenPair]:
        """
        Authenticates and starts a new session chain.

        All earlier refresh records of the user are revoked first: one
        active chain per user, so a new login signs other browsers out
        at their next refresh.
        """
        user = AuthService.authenticate_user(email, password, db)

        try:
            revoked = SessionStore.revoke_all(db, user.id)
            tokens = SessionService.issue_session(user, db)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            "User logged in",
            extra={"user_id": user.id, "email": user.email, "revoked_sessions": revoked}
        )
        return user, tokens

    @staticmethod
    def rotate(refresh_token: str | None, db: Session) -> TokenPair:
        """
        Exchanges a refresh token for a new pair (refresh-token rotation).

        The presented token must verify under the refresh secret and match a
        live stored record. Every record of the user is then revoked and the
        new refresh token stored, so the presented token is single-use.

        Raises:
            AuthenticationException: for any failure, without saying which
        """
        claims = TokenService.verify(refresh_token, TokenKind.REFRESH)
        if claims is None:
            logger.info("Refresh rejected - token did not verify")
            raise AuthenticationException(INVALID_REFRESH_TOKEN)

        record = SessionStore.find_matching_record(db, claims.user_id, refresh_token)
        if record is None:
            logger.warning(
                "Refresh rejected - no matching live record",
                extra={"user_id": claims.user_id}
            )
            raise AuthenticationException(INVALID_REFRESH_TOKEN)

        user = AuthService.get_user_by_id(db, claims.user_id)
        if user is None:
            raise AuthenticationException(INVALID_REFRESH_TOKEN)

        try:
            SessionStore.revoke_all(db, user.id)
            tokens = SessionService.issue_session(user, db)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info("Session rotated", extra={"user_id": user.id})
        return tokens

    @staticmethod
    def logout(access_token: str | None, refresh_token: str | None, db: Session) -> str | None:
        """
        Revokes every refresh record of the session's user.

        The user is taken from the access token, or from the refresh token
        when the access token has already expired. A refresh token only
        counts while it still matches a live record, so a rotated-out token
        cannot end the sessions that replaced it. Returns the user ID that
        was signed out, or None when neither token identifies anyone.
        """
        claims = TokenService.verify(access_token, TokenKind.ACCESS)
        if claims is None:
            claims = TokenService.verify(refresh_token, TokenKind.REFRESH)
            if claims is not None and SessionStore.find_matching_record(db, claims.user_id, refresh_token) is None:
                logger.info("Logout ignored stale refresh token", extra={"user_id": claims.user_id})
                claims = None
        if claims is None:
            return None

        try:
            revoked = SessionStore.revoke_all(db, claims.user_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            "User logged out",
            extra={"user_id": claims.user_id, "revoked_sessions": revoked}
        )
        return claims.user_id

    @staticmethod
    def get_current_user(access_token: str | None, db: Session) -> User | None:
        """
        User behind a valid access token, or None (missing, invalid, expired,
        or the user no longer exists).
        """
        claims = TokenService.verify(access_token, TokenKind.ACCESS)
        if claims is None:
            return None

        return AuthService.get_user_by_id(db, claims.user_id)
