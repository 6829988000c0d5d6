# settings.py  (Pydantic v2)
from pathlib import Path
from typing import Optional, Set
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # env
    ENV: str = Field(default="dev")
    DEBUG: bool = True

    # DB
    DATABASE_URL: str

    # auth collaborator (tokens are minted elsewhere, we only verify them)
    SECRET_KEY: str = "fallback-secret"
    JWT_ALGORITHM: str = "HS256"
    PRIVILEGED_ACCOUNTS: str = ""  # comma separated account ids that act as moderators

    # stats
    STATS_TIMEZONE: str = "America/Sao_Paulo"
    STATS_CACHE_TTL_SECONDS: int = 30
    RECENT_TOPICS_LIMIT: int = 10

    # counter reconciliation job
    ENABLE_RECONCILE_JOB: bool = False
    RECONCILE_INTERVAL_MINUTES: int = 60

    FRONTEND_URL: Optional[str] = None

    # pydantic-settings config
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).with_name(".env")),
        case_sensitive=True,
        extra="ignore",               # <-- tolerate unknown env vars
    )

    @property
    def privileged_accounts(self) -> Set[str]:
        return {a.strip() for a in self.PRIVILEGED_ACCOUNTS.split(",") if a.strip()}

settings = Settings()
