# app/core/config.py
from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings read from the environment and an optional .env file.

    Required env vars (.env):
      - SUPABASE_URL
      - DATABASE_URL (Postgres via the Supabase pooler, or sqlite:// locally)
      - SUPABASE_JWT_SECRET (verifies access tokens issued by Supabase Auth)

    Optional:
      - SUPABASE_SERVICE_ROLE_KEY (Storage uploads)
      - SUPABASE_KEY (anon key; read for parity with the frontend config, unused server-side)
      - email: RESEND_API_KEY, or SMTP_* / GMAIL_USER + GMAIL_PASSWORD
      - SITE_URL / FRONTEND_URL (links inside notification emails)
    """

    PROJECT_NAME: str = "Auto Speed Shop API"
    API_V1_STR: str = "/api"
    ENVIRONMENT: str = "development"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str | None = None
    DATABASE_URL: str
    DB_ECHO: bool = False

    # Access token verification
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Storage uploads need the service role key
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "assets"

    # Links rendered into emails
    SITE_URL: str | None = None
    FRONTEND_URL: str | None = None

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
        "http://localhost:3000",
    ]

    # --- Email ---
    # Resend HTTP API wins when configured, then SMTP, else log-only.
    RESEND_API_KEY: str | None = None
    RESEND_FROM_EMAIL: str = "Auto Speed Shop <onboarding@resend.dev>"

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "Auto Speed Shop"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    # Legacy Gmail credentials; used as SMTP credentials against smtp.gmail.com
    GMAIL_USER: str | None = None
    GMAIL_PASSWORD: str | None = None

    # Inbox receiving contact form submissions (falls back to the sender)
    OFFICIAL_EMAIL: str | None = None

    # Pause between two recipients of a bulk send
    EMAIL_SEND_DELAY_SECONDS: float = 0.5

    # --- Pricing ---
    CURRENCY: str = "USD"
    TAX_RATE: Decimal = Decimal("0.0825")
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("75")
    FLAT_SHIPPING_RATE: Decimal = Decimal("9.99")
    INVOICE_TAX_INCLUDES_FEES: bool = True
    LOW_STOCK_THRESHOLD: int = 10

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def smtp_host(self) -> str | None:
        if self.SMTP_HOST:
            return self.SMTP_HOST
        if self.GMAIL_USER:
            return "smtp.gmail.com"
        return None

    @property
    def smtp_username(self) -> str | None:
        return self.SMTP_USERNAME or self.GMAIL_USER

    @property
    def smtp_password(self) -> str | None:
        return self.SMTP_PASSWORD or self.GMAIL_PASSWORD

    @property
    def public_site_url(self) -> str:
        return (self.FRONTEND_URL or self.SITE_URL or "http://localhost:8080").rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
