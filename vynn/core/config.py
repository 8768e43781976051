import json
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = "http://localhost:5173"


def split_origins(raw: str | None) -> list[str]:
    """CORS_ORIGINS as a JSON list or a comma-separated string; empty means the dev frontend."""
    raw = (raw or "").strip()
    if raw.startswith("["):
        origins = [o for o in json.loads(raw) if isinstance(o, str) and o.strip()]
    else:
        origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or [_DEFAULT_CORS]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    env: str = Field(default="development", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    secret_key: str = Field(default="change-me-in-production-min-32-chars", alias="SECRET_KEY")

    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="vynn", alias="MONGODB_DB_NAME")

    # Discord bot API (membership / boosting / presence)
    discord_bot_api_url: str = Field(default="http://localhost:6000", alias="DISCORD_BOT_API_URL")
    discord_bot_timeout_seconds: float = Field(default=5.0, alias="DISCORD_BOT_TIMEOUT_SECONDS")

    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")
    cors_origins_raw: str = Field(default=_DEFAULT_CORS, alias="CORS_ORIGINS")

    # Referral rewards: the new user (referee) and the code owner (referrer)
    referee_bonus_xp: int = Field(default=50, alias="REFEREE_BONUS_XP")
    referee_bonus_credits: int = Field(default=25, alias="REFEREE_BONUS_CREDITS")
    referrer_reward_xp: int = Field(default=100, alias="REFERRER_REWARD_XP")
    referrer_reward_credits: int = Field(default=50, alias="REFERRER_REWARD_CREDITS")

    xp_per_profile_view: int = Field(default=1, alias="XP_PER_PROFILE_VIEW")

    @property
    def cors_origins(self) -> list[str]:
        return split_origins(self.cors_origins_raw)


@lru_cache
def get_settings() -> Settings:
    return Settings()
