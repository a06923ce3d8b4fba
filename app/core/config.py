# app/core/config.py
import re
from pydantic_settings import BaseSettings
from pydantic import AnyHttpUrl, field_validator # AnyHttpUrl stays in pydantic core
from functools import lru_cache
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


class Settings(BaseSettings):
    PROJECT_NAME: str = "x402 Demo Shop"
    LOG_LEVEL: str = "INFO"
    PORT: int = 4022

    # Payment gate (both required, the app refuses to start without them)
    FACILITATOR_URL: AnyHttpUrl
    ADDRESS: str
    NETWORK: str = "base-sepolia"

    # Settlement is asynchronous relative to verification; bound the wait
    SETTLEMENT_TIMEOUT_SECONDS: float = 60.0
    PAYMENT_MAX_TIMEOUT_SECONDS: int = 300

    AUDIT_LOG_ENABLED: bool = False
    AUDIT_LOG_PATH: str = "logs/x402_audit.jsonl"

    @field_validator("ADDRESS")
    @classmethod
    def validate_address(cls, v: str) -> str:
        if not ADDRESS_PATTERN.match(v):
            raise ValueError("ADDRESS must be a 0x-prefixed 20-byte hex address")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from .env

@lru_cache() # Cache the settings object for performance
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
