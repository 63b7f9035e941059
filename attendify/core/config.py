# attendify/core/config.py
import os
from typing import ClassVar
from pydantic import BaseModel, Field

def _default_database_url() -> str:
    data_dir = os.path.abspath(os.getenv("DATA_DIR", "./data"))
    os.makedirs(data_dir, exist_ok=True)
    return os.getenv("DATABASE_URL", f"sqlite:///{os.path.join(data_dir, 'attendify.db')}")

def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")

class Settings(BaseModel):
    # Constante (não vira campo Pydantic)
    DATA_DIR: ClassVar[str] = os.path.abspath(os.getenv("DATA_DIR", "./data"))

    # banco / tokens
    DATABASE_URL: str = Field(default_factory=_default_database_url)
    SECRET_KEY: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "CHANGE_ME_SUPER_SECRET"))
    ALGORITHM: str = Field(default_factory=lambda: os.getenv("JWT_ALGORITHM", "HS256"))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")))
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default_factory=lambda: int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7")))
    TIMEZONE: str = Field(default_factory=lambda: os.getenv("TIMEZONE", "UTC"))

    # janelas de check-in
    CHECKIN_OPENS_MINUTES_BEFORE: int = Field(default_factory=lambda: int(os.getenv("CHECKIN_OPENS_MINUTES_BEFORE", "30")))
    STAFF_CHECKIN_GRACE_HOURS: int = Field(default_factory=lambda: int(os.getenv("STAFF_CHECKIN_GRACE_HOURS", "24")))
    LATE_GRACE_MINUTES: int = Field(default_factory=lambda: int(os.getenv("LATE_GRACE_MINUTES", "15")))
    EARLY_THRESHOLD_MINUTES: int = Field(default_factory=lambda: int(os.getenv("EARLY_THRESHOLD_MINUTES", "5")))
    DESCRIPTION_REVEAL_HOURS: int = Field(default_factory=lambda: int(os.getenv("DESCRIPTION_REVEAL_HOURS", "24")))

    # tarefas de fundo
    SWEEP_INTERVAL_SECONDS: int = Field(default_factory=lambda: int(os.getenv("SWEEP_INTERVAL_SECONDS", "300")))
    BACKGROUND_WORKERS: int = Field(default_factory=lambda: int(os.getenv("BACKGROUND_WORKERS", "4")))
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default_factory=lambda: _env_bool("RUN_MIGRATIONS_ON_STARTUP", "true"))

    # rate limit (por IP)
    RATE_LIMIT_REQUESTS: int = Field(default_factory=lambda: int(os.getenv("RATE_LIMIT_REQUESTS", "100")))
    RATE_LIMIT_WINDOW_SECONDS: int = Field(default_factory=lambda: int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")))

    # e-mail
    SMTP_HOST: str = Field(default_factory=lambda: os.getenv("SMTP_HOST", ""))
    SMTP_PORT: int = Field(default_factory=lambda: int(os.getenv("SMTP_PORT", "587")))
    SMTP_USER: str = Field(default_factory=lambda: os.getenv("SMTP_USER", ""))
    SMTP_PASSWORD: str = Field(default_factory=lambda: os.getenv("SMTP_PASSWORD", ""))
    SMTP_FROM: str = Field(default_factory=lambda: os.getenv("SMTP_FROM", "no-reply@attendify.local"))
    SMTP_USE_TLS: bool = Field(default_factory=lambda: _env_bool("SMTP_USE_TLS", "true"))

    # logging
    LOG_LEVEL: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    LOG_JSON: bool = Field(default_factory=lambda: _env_bool("LOG_JSON"))
    LOG_DIR: str = Field(default_factory=lambda: os.getenv("LOG_DIR", ""))

    # contas
    VERIFICATION_CODE_TTL_MINUTES: int = Field(default_factory=lambda: int(os.getenv("VERIFICATION_CODE_TTL_MINUTES", "30")))
    RESET_CODE_TTL_MINUTES: int = Field(default_factory=lambda: int(os.getenv("RESET_CODE_TTL_MINUTES", "15")))
    SUPERADMIN_STUDENT_ID: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_STUDENT_ID", "SUPERADMIN"))
    SUPERADMIN_EMAIL: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_EMAIL", "superadmin@attendify.local"))
    SUPERADMIN_PASSWORD: str = Field(default_factory=lambda: os.getenv("SUPERADMIN_PASSWORD", "ChangeMe!2024"))

settings = Settings()
