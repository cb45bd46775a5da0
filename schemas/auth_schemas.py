from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
import re


def normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class CreateUserRequest(BaseModel):
    name: str
    email: EmailStr
    password: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, value):
        value = value.strip()
        if len(value) < 2:
            raise ValueError('Name must be at least 2 characters')
        if len(value) > 100:
            raise ValueError('Name must be at most 100 characters')
        return value

    @field_validator('email', mode='before')
    @classmethod
    def validate_email(cls, value):
        value = normalize_email(value)
        if isinstance(value, str) and len(value) > 255:
            raise ValueError('Email must be at most 255 characters')
        return value

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        """
        Password must be 8-128 characters and contain:
        - At least one lowercase letter
        - At least one uppercase letter
        - At least one digit
        """
        if len(value) < 8:
            raise ValueError('Password must be at least 8 characters')

        if len(value) > 128:
            raise ValueError('Password must be at most 128 characters')

        if not (re.search(r'[a-z]', value) and re.search(r'[A-Z]', value) and re.search(r'\d', value)):
            raise ValueError(
                'Password must contain at least one lowercase letter, one uppercase letter, and one digit'
            )

        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email', mode='before')
    @classmethod
    def validate_email(cls, value):
        return normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value):
        if not value:
            raise ValueError('Password is required')
        return value


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str


class AuthResponse(BaseModel):
    user: UserResponse
    message: str


class CurrentUserResponse(BaseModel):
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
