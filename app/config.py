from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    app_name: str = "MindJournal"
    debug: bool = False
    log_level: str = "INFO"

    # Security
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 43200  # 30 days
    session_cookie_secure: bool = True

    # Database - supports SQLite (dev) or PostgreSQL (prod)
    database_url: str = "sqlite+aiosqlite:///./mindjournal.db"

    # Text analysis: "auto", "openai", "gemini" or "keyword"
    analysis_provider: str = "auto"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    analysis_min_content_length: int = 50
    llm_max_attempts: int = 3

    # Billing
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    premium_price_cents: int = 300
    premium_currency: str = "usd"
    premium_product_name: str = "MindJournal Premium"
    premium_product_description: str = "Lifetime access to premium features"

    @property
    def async_database_url(self) -> str:
        """Convert DATABASE_URL to async format for SQLAlchemy."""
        url = self.database_url
        # Handle Railway/Fly PostgreSQL URLs
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif url.startswith("postgresql://") and "+asyncpg" not in url:
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    @property
    def billing_enabled(self) -> bool:
        return bool(self.stripe_secret_key)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
