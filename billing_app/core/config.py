from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_TITLE: str = "Freelance Billing Tracker"
    DATABASE_URL: str = "sqlite:///./billing.db"
    LOG_LEVEL: str = "INFO"

    CURRENCY: str = "BDT"
    INVOICE_START_NUMBER: int = 100

    CORS_ORIGINS: list[str] = ["*"]


settings = Settings()
