from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_ENVIRONMENTS = {"development", "testing", "production"}
ISOLATION_LEVELS = {"SERIALIZABLE", "REPEATABLE READ", "READ COMMITTED", "AUTOCOMMIT"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "taskcore"
    app_env: str = "development"  # development, testing, production
    debug: bool = False

    # Logging
    log_user_emails: bool = False  # Set to False in production for GDPR compliance

    # Database
    database_url: str
    database_migrations_url: str | None = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full
    database_statement_cache_size: int = 100
    database_isolation_level: str = "SERIALIZABLE"
    database_statement_timeout_ms: int = 15000  # 0 disables the per-transaction timeout

    # Tasks
    task_position_gap: int = 1024

    # Attention inbox
    attention_due_soon_hours: int = 24
    attention_body_preview_length: int = 100

    # Invitations
    invitation_expire_days: int = 7

    # Activity snapshots
    default_project_color: str = "#3B82F6"

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        env = v.strip().lower()
        if env not in APP_ENVIRONMENTS:
            raise ValueError(f"Unknown APP_ENV '{v}'. Use one of {sorted(APP_ENVIRONMENTS)}")
        return env

    @field_validator("database_isolation_level")
    @classmethod
    def validate_isolation_level(cls, v: str) -> str:
        level = v.upper().replace("_", " ")
        if level not in ISOLATION_LEVELS:
            raise ValueError(f"Unsupported isolation level '{v}'. Use one of {sorted(ISOLATION_LEVELS)}")
        return level

    @field_validator("task_position_gap")
    @classmethod
    def validate_position_gap(cls, v: int) -> int:
        if v < 2:
            raise ValueError("TASK_POSITION_GAP must be at least 2 so reorders can bisect")
        return v

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith("postgresql")


@lru_cache
def get_settings() -> Settings:
    return Settings()
