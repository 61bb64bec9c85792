# backend/salesflow/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/salesflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///salesflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # bcrypt cost factor for password hashing
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Reject re-approving / re-rejecting quotes that already left Draft
    STRICT_QUOTE_TRANSITIONS = _env_flag("STRICT_QUOTE_TRANSITIONS")

    # Restrict item request status updates to the known lifecycle states
    STRICT_ITEM_REQUEST_STATUS = _env_flag("STRICT_ITEM_REQUEST_STATUS")
