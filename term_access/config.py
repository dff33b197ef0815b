from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Term Access"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./term_access.db"

    # Security settings
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Redis (cache invalidation). Unset disables the cache backend.
    redis_url: str | None = None

    # Access control settings
    term_inheritance_enabled: bool = False
    max_hierarchy_depth: int = 64
    restricted_vocabularies: list[str] = []
    bypass_capability: str = "content.bypass_access"
    manage_capability: str = "permissions.manage"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
