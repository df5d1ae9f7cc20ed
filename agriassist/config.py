"""
Settings for the AgriAssist API (pydantic-settings).

Everything configurable is read from the environment or a local .env file:

    from agriassist.config import settings
    settings.DATABASE_URL
"""
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    BASE_DIR: Path = Path(__file__).resolve().parent.parent

    # --- API ---
    APP_NAME: str = "AgriAssist"
    APP_VERSION: str = "1.0.0"
    APP_URL: str = "http://localhost:9002"
    ALLOWED_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # --- Database ---
    DATABASE_URL: str = ""

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or f"sqlite:///{(self.BASE_DIR / 'agriassist.db').as_posix()}"

    # --- Identity (Firebase Admin) ---
    FIREBASE_SERVICE_ACCOUNT_BASE64: str = ""

    # --- LLM ---
    OPENAI_API_KEY: str = ""
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.2
    LLM_TIMEOUT_SECONDS: float = 60.0

    # --- Stripe ---
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRICE_ID_PRO: str = ""
    STRIPE_PRICE_ID_AGRIBUSINESS: str = ""

    # --- Email (Resend) ---
    RESEND_API_KEY: str = ""
    RESEND_FROM_EMAIL: str = ""
    RESEND_API_URL: str = "https://api.resend.com/emails"

    @property
    def from_email(self) -> str:
        return self.RESEND_FROM_EMAIL or f"{self.APP_NAME} <onboarding@resend.dev>"

    # --- Farm membership ---
    INVITATION_TTL_DAYS: int = 7

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def app_url(self) -> str:
        """Base URL with a scheme and without a trailing slash."""
        url = self.APP_URL if "http" in self.APP_URL else f"https://{self.APP_URL}"
        return url.rstrip("/")


settings = Settings()
