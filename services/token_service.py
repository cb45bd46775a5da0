import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from enum import Enum
from jose import jwt, JWTError
from core.config import settings


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


def _secret_for(kind: TokenKind) -> str:
    if kind is TokenKind.ACCESS:
        return settings.ACCESS_TOKEN_SECRET
    return settings.REFRESH_TOKEN_SECRET


def _default_ttl(kind: TokenKind) -> timedelta:
    if kind is TokenKind.ACCESS:
        return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


class TokenService:
    """
    Signs and verifies access and refresh tokens.

    Both kinds share one claims shape and differ only in signing secret,
    lifetime and the "type" claim.
    """

    @staticmethod
    def sign(kind: TokenKind, user_id: str, email: str, expires_delta: timedelta = None) -> str:
        """
        Creates a signed JWT.

        Args:
            kind: TokenKind.ACCESS or TokenKind.REFRESH
            user_id: Subject (user ID)
            email: User's email
            expires_delta: Lifetime override (default: 15 minutes / 7 days by kind)

        Returns:
            Compact JWT string
        """
        if expires_delta is None:
            expires_delta = _default_ttl(kind)

        issued_at = datetime.now(timezone.utc)

        payload = {
            "sub": str(user_id),
            "email": email,
            "type": kind.value,
            "iat": issued_at,
            "exp": issued_at + expires_delta
        }

        if kind is TokenKind.REFRESH:
            # Unique per token, so two refreshes in the same second still differ
            payload["jti"] = secrets.token_urlsafe(16)

        return jwt.encode(payload, _secret_for(kind), algorithm=settings.ALGORITHM)

    @staticmethod
    def verify(token: str, kind: TokenKind) -> TokenClaims | None:
        """
        Verifies signature, expiry and structure of a token.

        Returns:
            TokenClaims, or None for any failure. The reason is never exposed.
        """
        if not token:
            return None

        try:
            payload = jwt.decode(token, _secret_for(kind), algorithms=[settings.ALGORITHM])
        except JWTError:
            return None

        if payload.get("type") != kind.value:
            return None

        user_id = payload.get("sub")
        email = payload.get("email")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")

        if not all([user_id, email, issued_at, expires_at]):
            return None

        try:
            return TokenClaims(
                user_id=str(user_id),
                email=str(email),
                issued_at=datetime.fromtimestamp(int(issued_at), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(expires_at), tz=timezone.utc)
            )
        except (TypeError, ValueError, OverflowError):
            return None

