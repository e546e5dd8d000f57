# app/core/config.py
import os
from typing import List
from pydantic import BaseModel
from dotenv import load_dotenv
from urllib.parse import quote_plus

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _database_url() -> str:
    url = os.getenv("DATABASE_URL", "").strip()
    if url:
        return url
    host = os.getenv("MYSQL_HOST", "").strip()
    if not host:
        return "sqlite:///./billing_ledger.db"
    # MySQL when MYSQL_HOST is configured
    driver = os.getenv("DB_DRIVER", "pymysql")
    user = os.getenv("MYSQL_USER", "billing_user")
    password = os.getenv("MYSQL_PASSWORD", "")
    port = os.getenv("MYSQL_PORT", "3306")
    db = os.getenv("MYSQL_DB", "billing_ledger")
    return (f"mysql+{driver}://{quote_plus(user)}:{quote_plus(password)}"
            f"@{host}:{port}/{db}?charset=utf8mb4")


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "HIMS Billing Ledger")
    API_PREFIX: str = os.getenv("API_PREFIX", "/api")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    # ---------- Database ----------
    DATABASE_URL: str = _database_url()
    DB_ECHO: bool = _flag("DB_ECHO")

    # ---------- Billing ----------
    BILLING_CURRENCY: str = os.getenv("BILLING_CURRENCY", "KES")
    # decimal places of the currency (KES -> cents)
    BILLING_MINOR_UNITS: int = int(os.getenv("BILLING_MINOR_UNITS", "2"))
    BILLING_ACCOUNT_PREFIX: str = os.getenv("BILLING_ACCOUNT_PREFIX", "BA")
    BILLING_ACCOUNT_PADDING: int = int(
        os.getenv("BILLING_ACCOUNT_PADDING", "6"))
    # attempts after an optimistic-lock conflict on an account/claim row
    BILLING_WRITE_RETRIES: int = int(os.getenv("BILLING_WRITE_RETRIES", "3"))

    # ---------- Logging ----------
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
