from pydantic_settings.main import SettingsConfigDict
from typing import Annotated
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Server settings
    server_host: str = Field(default="0.0.0.0", alias="SERVER_HOST")
    server_port: int = Field(default=8000, alias="SERVER_PORT")

    # CORS settings
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(
        default=[], alias="CORS_ALLOW_ORIGINS"
    )

    # OIDC settings
    oidc_authority: str = Field(alias="OIDC_AUTHORITY")
    oidc_client_id: str = Field(alias="OIDC_CLIENT_ID")
    # The client app that completes the authorization code flow
    frontend_redirect_uri: str = Field(
        default="http://localhost:5173/auth/callback", alias="FRONTEND_REDIRECT_URI"
    )

    # Storage
    database_url: str = Field(
        default="sqlite+pysqlite:///database.sqlite3", alias="DATABASE_URL"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str | None = Field(default="schedule_arranger.log", alias="LOG_FILE")

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            origins = [origin.strip() for origin in v.strip("[]").split(",")]
            # Remove empty strings
            origins = [origin for origin in origins if origin]
            return origins
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def model_post_init(self, __context):
        if not self.cors_allow_origins:
            raise ValueError(
                "Missing required environment variable: CORS_ALLOW_ORIGINS"
            )

    @property
    def oidc_config_url(self) -> str:
        return self.oidc_authority.rstrip("/") + "/.well-known/openid-configuration"

    @property
    def oidc_issuer(self) -> str:
        return self.oidc_authority.rstrip("/")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", frozen=True
    )
