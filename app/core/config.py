from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./scheduling.db", alias="DATABASE_URL")
    sql_echo: bool = Field(False, alias="SQL_ECHO")
    auto_create_tables: bool = Field(True, alias="AUTO_CREATE_TABLES")
    # Isolation applied to matrix create/replace transactions.
    matrix_isolation_level: str = Field("SERIALIZABLE", alias="MATRIX_ISOLATION_LEVEL")

    jwt_secret_key: str = Field("insecure-development-secret", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(120, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: List[str] = Field(["*"], alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
