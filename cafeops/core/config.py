from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- Service ---
    PROJECT_NAME: str = "Cafe_Ops"
    DATABASE_URL: str = "sqlite:///./cafe_ops.db"
    DB_CONNECT_RETRIES: int = 10
    DB_CONNECT_WAIT_SECONDS: float = 3.0

    # --- Client side (sync loop) ---
    ORDER_STORE_URL: str = "http://localhost:8080"
    SYNC_INTERVAL_SECONDS: float = 10.0
    HTTP_TIMEOUT_SECONDS: float = 5.0

    # --- Seen set persistence ---
    # When REDIS_URL is empty the seen set lives in SEEN_STORE_PATH instead
    REDIS_URL: str | None = None
    SEEN_STORE_PATH: str = "data/seen_events.json"

    # --- Reporting / policy ---
    SERVING_TIME_CEILING_MINUTES: float = 180.0
    REQUIRE_TABLE_REFERENCE: bool = True
    CAFE_TIMEZONE: str = "UTC"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
