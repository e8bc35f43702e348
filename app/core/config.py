from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_TIMEZONE: str = "Europe/Paris"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_PROVIDER: str = "memory"  # "memory" | "json"
    DATA_DIR: str = "./data"

    SCHEDULE_SETTINGS_PATH: str = "./data/schedule_settings.json"
    SCHEDULE_SETTINGS_TTL_SECONDS: float = 60.0

    CALENDAR_FEED_URL: str | None = None
    CALENDAR_FETCH_TIMEOUT_SECONDS: float = 10.0
    CALENDAR_USER_AGENT: str = "slot-booking-engine/1.0"
    CALENDAR_RETRY_BACKOFF_SECONDS: float = 60.0

    ADMIN_API_KEY: str | None = None


settings = Settings()
