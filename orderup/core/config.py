from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "OrderUp"

    # --- Storage ---
    # Leave unset to keep orders in memory.
    DATABASE_URL: str | None = None
    DB_CONNECT_RETRIES: int = 10
    DB_CONNECT_WAIT_SECONDS: float = 3.0

    # --- Charge service ---
    CHARGE_SERVICE_URL: str = "http://localhost:8081"
    CHARGE_SERVICE_TIMEOUT_SECONDS: float = 10.0

    # --- Server ---
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
