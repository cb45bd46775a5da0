import uuid
from core.database import Base
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


def generate_user_id() -> str:
    return str(uuid.uuid4())


class User(Base, CreatedAtMixin):
    __tablename__ = "users"

    #pk
    id = Column(String(36), primary_key=True, default=generate_user_id)

    #relationships
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True
    )

    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)
