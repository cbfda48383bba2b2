# backend/cashier/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _database_uri() -> str:
    """
    Resolve the database URI.

    DATABASE_URL wins. Otherwise a PostgreSQL URI is assembled from the DB_*
    variables when all of them are present, and a local SQLite file is used
    as the last resort.
    """
    url = os.environ.get("DATABASE_URL", "").strip()
    if url:
        if url.startswith("postgres://"):
            url = "postgresql+psycopg://" + url[len("postgres://"):]
        elif url.startswith("postgresql://"):
            url = "postgresql+psycopg://" + url[len("postgresql://"):]
        return url

    parts = {name: os.environ.get(f"DB_{name}", "").strip() for name in ("HOST", "PORT", "USER", "PASSWORD", "NAME")}
    if all(parts.values()):
        return (
            f"postgresql+psycopg://{parts['USER']}:{parts['PASSWORD']}"
            f"@{parts['HOST']}:{parts['PORT']}/{parts['NAME']}"
        )

    return "sqlite:///cashier.sqlite3"


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Baseline values written by `flask system init` for missing settings rows
    DEFAULT_STORE_NAME = os.environ.get("CASHIER_STORE_NAME", "My Store")
    DEFAULT_INVOICE_PREFIX = os.environ.get("CASHIER_INVOICE_PREFIX", "INV")
