# labsupply/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./labsupply_portal.db"

    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    # CSV bulk import
    BULK_UPLOAD_MAX_ROWS: int = 500

    # Mandatory minimum wallet balance ($500.00)
    COMPLIANCE_RESERVE_CENTS: int = 50000

    # Flat shipping estimate added to every order ($8.95)
    ORDER_SHIPPING_ESTIMATE_CENTS: int = 895

    # Banking (Mercury) customer creation on KYB approval; disabled without a token
    MERCURY_API_URL: str = "https://api.mercury.com/api/v1/"
    MERCURY_API_TOKEN: Optional[str] = None

    # Super admin created on startup when both are set
    BOOTSTRAP_ADMIN_EMAIL: Optional[str] = None
    BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = None

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

settings = Settings()
