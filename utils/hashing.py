import hashlib
from passlib.context import CryptContext
from core.config import settings

# bcrypt only reads 72 bytes; bcrypt_sha256 folds the whole password in first
bcrypt_context = CryptContext(
    schemes=['bcrypt_sha256'],
    deprecated='auto',
    bcrypt_sha256__rounds=settings.BCRYPT_ROUNDS
)

# Refresh tokens are high-entropy already, a lower cost keeps rotation fast
token_context = CryptContext(
    schemes=['bcrypt'],
    deprecated='auto',
    bcrypt__rounds=settings.REFRESH_TOKEN_HASH_ROUNDS
)


def get_password_hash(password: str) -> str:
    return bcrypt_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a password against a stored hash.

    A malformed or unrecognised hash is treated as a mismatch.
    """
    try:
        return bcrypt_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def _token_digest(raw_token: str) -> str:
    # JWTs are longer than bcrypt's 72-byte window and share a long header
    # prefix, so the whole token is folded into a fixed-size digest first.
    return hashlib.sha256(raw_token.encode()).hexdigest()


def hash_token(raw_token: str) -> str:
    return token_context.hash(_token_digest(raw_token))


def verify_token(raw_token: str, token_hash: str) -> bool:
    try:
        return token_context.verify(_token_digest(raw_token), token_hash)
    except (ValueError, TypeError):
        return False
