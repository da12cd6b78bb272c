import os
import logging
from typing import List, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from .errors import ConfigurationError

# Load .env file
load_dotenv()

# Development fallback only. Operators must set IP_SALT in production, otherwise
# IP hashes can be reversed by brute-forcing the IPv4 space with this known salt.
DEFAULT_IP_SALT = "qr-app-salt-change-in-production"


class Settings(BaseModel):
    database_url: str
    ip_salt: str = DEFAULT_IP_SALT
    storage_timeout: float = Field(5.0, gt=0)
    public_base_url: Optional[str] = None
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def uses_default_salt(self) -> bool:
        return self.ip_salt == DEFAULT_IP_SALT

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment (and a .env file if present).

        A missing DATABASE_URL is fatal: it raises ConfigurationError so the
        application refuses to start instead of failing on the first request.
        """
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise ConfigurationError("DATABASE_URL environment variable is required")

        # Standardize Postgres URL if needed (Supabase/Vercel often use postgres://)
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)

        try:
            timeout = float(os.getenv("STORAGE_TIMEOUT", "5"))
        except ValueError:
            raise ConfigurationError("STORAGE_TIMEOUT must be a number of seconds")

        return cls(
            database_url=database_url,
            ip_salt=os.getenv("IP_SALT") or DEFAULT_IP_SALT,
            storage_timeout=timeout,
            public_base_url=(os.getenv("PUBLIC_BASE_URL") or "").rstrip("/") or None,
            cors_origins=cors_origins_from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def cors_origins_from_env() -> List[str]:
    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    return origins or ["*"]


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
