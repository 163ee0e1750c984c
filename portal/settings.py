from typing import Literal, Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    BACKEND_API_URL: AnyHttpUrl = Field(
        default="http://localhost:8080", alias="BACKEND_API_URL"
    )
    ENVIRONMENT: str = Field(default="development", alias="ENVIRONMENT")
    DEBUG: bool = Field(default=False, alias="DEBUG")
    LOG_LEVEL: str = Field(default="INFO", alias="LOG_LEVEL")

    # Session cookies
    TOKEN_COOKIE_NAME: str = Field(default="jwt_token", alias="TOKEN_COOKIE_NAME")
    PROFILE_COOKIE_NAME: str = Field(default="user_data", alias="PROFILE_COOKIE_NAME")
    SESSION_MAX_AGE_SECONDS: int = Field(
        default=60 * 60 * 24, alias="SESSION_MAX_AGE_SECONDS"
    )  # 24 hours, never refreshed
    COOKIE_SAMESITE: Literal["lax", "strict"] = Field(
        default="lax", alias="COOKIE_SAMESITE"
    )
    LOGIN_PATH: str = Field(default="/login", alias="LOGIN_PATH")

    # None keeps the httpx client defaults
    BACKEND_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None, alias="BACKEND_TIMEOUT_SECONDS"
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cookie_secure(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def backend_base_url(self) -> str:
        return str(self.BACKEND_API_URL).rstrip("/")


settings = Settings()
