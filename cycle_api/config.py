from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load local .env for development
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")


class Settings(BaseSettings):
    # ─── Database ───────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite:///./cycle_tracker.db"

    # ─── Auth ───────────────────────────────────────────────────────────────────
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_EXPIRE_SECONDS: int = 60 * 60 * 24 * 7

    # ─── Cron / scheduler ───────────────────────────────────────────────────────
    CRON_SECRET: Optional[str] = Field(default=None)
    ENABLE_SCHEDULER: bool = False
    SCHEDULER_INTERVAL_MINUTES: int = 15
    ENABLE_TEST_ROUTES: bool = False

    # ─── Web push (VAPID) ───────────────────────────────────────────────────────
    VAPID_PUBLIC_KEY: Optional[str] = Field(default=None)
    VAPID_PRIVATE_KEY: Optional[str] = Field(default=None)
    VAPID_SUBJECT: str = "mailto:support@healthtracker.com"
    NEXT_PUBLIC_VAPID_PUBLIC_KEY: Optional[str] = Field(default=None)

    # ─── Misc ───────────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "*"  # comma-separated

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @property
    def vapid_public_key(self) -> Optional[str]:
        return self.VAPID_PUBLIC_KEY or self.NEXT_PUBLIC_VAPID_PUBLIC_KEY

    @property
    def vapid_configured(self) -> bool:
        return bool(self.vapid_public_key and self.VAPID_PRIVATE_KEY)


# single settings instance for the whole app
settings = Settings()


def cors_origins(csv_value: str) -> List[str]:
    """
    Accepts a CSV of origins; "*" (or an empty value) allows everything.
    """
    out = [o.strip() for o in csv_value.split(",") if o.strip()]
    return out or ["*"]
