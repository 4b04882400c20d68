"""
Application settings
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/giftsync.db"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # File storage
    DATA_DIR: str = "./data"

    # PII encryption (EIN, stored secrets)
    ENCRYPTION_KEY: str = "change-this-encryption-key-in-production"
    ENCRYPTION_SALT: str = "giftsync-pii-salt"
    ENCRYPTION_KDF_ITERATIONS: int = 390000

    # QuickBooks Online
    QUICKBOOKS_ENVIRONMENT: str = "sandbox"
    QUICKBOOKS_TIMEOUT_SECONDS: float = 30.0
    QUICKBOOKS_MINOR_VERSION: int = 65

    # Transaction report
    REPORT_MAX_RESULTS: int = 100
    REPORT_COLUMNS: str = "tx_date,doc_num,name,txn_type,subt_nat_amount"

    # Admin gate
    ADMIN_DEFAULT_PASSWORD: str = "change-me"
    ADMIN_SESSION_TIMEOUT_MINUTES: int = 30
    ADMIN_MAX_LOGIN_ATTEMPTS: int = 5
    ADMIN_LOCKOUT_MINUTES: int = 15

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
