from typing import Any, Dict, List, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "TradeWiser"
    API_PREFIX: str = "/api"
    # Must be overridden through .env or the environment in production
    SECRET_KEY: str = Field(
        default="dev-only-secret-key-please-change-in-production",
        description="Session cookie signing key"
    )
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 7  # 7 days
    
    # CORS
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:5000",
        "http://127.0.0.1:5000",
        "http://localhost:5173",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    SQLITE_DATABASE_URI: str = "sqlite:///./tradewiser.db"
    
    # Receipt attachments
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    
    # Base URL printed into QR codes
    PUBLIC_BASE_URL: str = "http://localhost:5000"
    
    # Valuation and receipts
    DEFAULT_PRICE_PER_KG: float = 50.0  # Rs per kg when no valuation is supplied
    RECEIPT_VALIDITY_DAYS: int = 180
    
    # Lending
    LOAN_TO_VALUE_RATIO: float = 0.8
    DEFAULT_INTEREST_RATE: float = 12.0
    
    # Daily loan default sweep
    LOAN_SWEEP_ENABLED: bool = True
    LOAN_SWEEP_HOUR: int = 2  # 0-23
    LOAN_SWEEP_MINUTE: int = 30  # 0-59
    
    # External warehouse providers (orange channel)
    # e.g. {"agriapp": {"base_url": "https://api.agriapp.in", "api_key": "..."}}
    EXTERNAL_WAREHOUSE_PROVIDERS: Dict[str, Dict[str, Any]] = {}
    OUTBOUND_API_RETRY_ATTEMPTS: int = 3

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"Loaded settings: API_PREFIX={settings.API_PREFIX}, CORS={settings.BACKEND_CORS_ORIGINS}")
