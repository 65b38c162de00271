from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Daily Stock Ledger"
    DATABASE_URL: str = "sqlite:///./inventory.db"

    # Bulk load size for history and reports
    RECORDS_LIMIT: int = 100

    # Reports cover the last N days unless a range is given
    REPORT_DEFAULT_DAYS: int = 30

    DEFAULT_PAGE_SIZE: int = 10

    LOG_LEVEL: str = "INFO"

    HOST: str = "127.0.0.1"
    PORT: int = 8000

    model_config = {"env_file": ".env"}


settings = Settings()
