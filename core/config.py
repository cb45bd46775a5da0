from pydantic_settings import BaseSettings
from pydantic import ConfigDict, field_validator, model_validator

class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", extra="ignore")

    ENV: str = "development"

    DATABASE_URL: str = "sqlite:///./taskflow.db"

    # Separate secrets per token kind, a leak of one cannot forge the other
    ACCESS_TOKEN_SECRET: str
    REFRESH_TOKEN_SECRET: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    BCRYPT_ROUNDS: int = 12
    REFRESH_TOKEN_HASH_ROUNDS: int = 10

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    GLOBAL_RATE_LIMIT: str = "200/hour"
    RATE_LIMIT_SWEEP_SECONDS: int = 60

    LLM_API_KEY: str | None = None
    LLM_BASE_URL: str = "https://api.groq.com/openai/v1"
    LLM_MODEL: str = "llama-3.3-70b-versatile"
    LLM_TIMEOUT_SECONDS: float = 60.0

    @field_validator("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET")
    @classmethod
    def validate_secret(cls, value):
        if not value or not value.strip():
            raise ValueError("Token secret must not be empty")
        return value

    @model_validator(mode="after")
    def validate_distinct_secrets(self):
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        return self

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def is_testing(self) -> bool:
        return self.ENV == "testing"


settings = Settings()
