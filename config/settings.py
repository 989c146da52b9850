from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    SUPABASE_URL: str
    SUPABASE_KEY: str
    AUDIT_TABLE: str = "auditoria"
    GUIDES_TABLE: str = "guias"
    BILLING_TABLE: str = "processos"

    MAX_RECORDS: int = 2000
    TOP_N: int = 10
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Regulation SLA
    SLA_DEFAULT_COMPLIANT: bool = True
    AUTOMATED_HANDLER_NAME: str = "IA"
    ROBOTIC_HANDLER_NAME: str = "RPA"
    ROBOTIC_HANDLER_ALIASES: List[str] = ["robo", "robo regulacao", "rpa", "usuario automacao"]

    # Live queue API
    QUEUE_API_BASE_URL: str = ""
    QUEUE_API_USERNAME: str = ""
    QUEUE_API_PASSWORD: str = ""
    QUEUE_REQUEST_TYPES: List[str] = ["INTERNACAO", "SADT"]
    QUEUE_PAGE_SIZE: int = 100
    QUEUE_PAGE_DELAY_SECONDS: float = 0.3
    QUEUE_HTTP_TIMEOUT: float = 30.0
    ELECTIVE_SLA_HOURS: float = 21 * 24
    URGENT_SLA_HOURS: float = 6
    ELECTIVE_ALERT_HOURS: float = 48
    URGENT_ALERT_HOURS: float = 2

    class Config:
        env_file = ".env"

@lru_cache
def get_settings() -> Settings:
    return Settings()
