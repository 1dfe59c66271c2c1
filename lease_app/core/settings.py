import os
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "FLEXIRENT LEASE AND PAYMENT ENGINE"
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", "sqlite+aiosqlite:///./lease_engine.db"
    )
    DATABASE_ECHO: bool = False
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    LEASE_SWEEP_CRON_HOUR: int = 1
    LEASE_SWEEP_CRON_MINUTE: int = 0
    ALLOWED_HOSTS_RAW: str = os.getenv("ALLOWED_HOSTS", "")

    @property
    def ALLOWED_HOSTS(self) -> List[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS_RAW.split(",") if host.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False


settings = Settings()
