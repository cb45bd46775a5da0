from utils.hashing import verify_password, get_password_hash
from models.users import User
from schemas.auth_schemas import CreateUserRequest
from sqlalchemy.orm import Session
from core.exceptions import AuthenticationException, ConflictException
from utils.logger import get_logger

logger = get_logger(__name__)

# Same message for unknown email and wrong password
INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:

    @staticmethod
    def create_user(request: CreateUserRequest, db: Session) -> User:
        """
        Creates a new user. The caller commits.

        Raises:
            ConflictException: email already registered
        """
        email = request.email.lower().strip()

        existing_user = AuthService.get_user_by_email(db, email)
        if existing_user:
            logger.warning(
                "Registration attempt with existing email",
                extra={"email": email}
            )
            raise ConflictException("An account with this email already exists")

        model = User(
            email=email,
            name=request.name,
            hashed_password=get_password_hash(request.password)
        )

        db.add(model)
        db.flush()

        return model


    @staticmethod
    def authenticate_user(email: str, password: str, db: Session) -> User:
        user = AuthService.get_user_by_email(db, email.lower().strip())

        if not user:
            logger.warning(
                "Login failed - user not found",
                extra={"email": email}
            )
            raise AuthenticationException(INVALID_CREDENTIALS)

        if not verify_password(password, user.hashed_password):
            logger.warning(
                "Login failed - invalid password",
                extra={"user_id": user.id, "email": email}
            )
            raise AuthenticationException(INVALID_CREDENTIALS)

        logger.debug(
            "User authenticated successfully",
            extra={"user_id": user.id, "email": email}
        )

        return user

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email).one_or_none()

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> User | None:
        return db.query(User).filter(User.id == user_id).one_or_none()
