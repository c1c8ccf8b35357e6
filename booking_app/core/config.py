from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Appointment Booking System"
    API_PREFIX: str = "/booking-server"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"

    # Storage: "local" (JSON file, offline mode) or "supabase" (hosted auth + KV)
    STORE_BACKEND: str = "local"
    LOCAL_STORE_PATH: str = "data/local_store.json"
    SEED_DATA_PATH: str = ""

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    KV_TABLE: str = "kv_store"

    # Verification links / QR codes
    VERIFY_BASE_URL: str = "http://localhost:5173"

    # Remote client
    REMOTE_API_URL: str = "http://localhost:8000/booking-server"
    REMOTE_TIMEOUT: Optional[float] = None
    NOTIFICATION_POLL_INTERVAL: float = 2.0

    # Admin e-mail notifications
    ADMIN_EMAIL: str = ""
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_TIMEOUT: float = 10.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/errors.log"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
