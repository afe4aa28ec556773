# backend/stockpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a SQLite writer waits on the database lock before OperationalError
    STOCKPOS_SQLITE_TIMEOUT = float(os.environ.get("STOCKPOS_SQLITE_TIMEOUT", "15"))

    # Unit-of-work retry policy for lock conflicts and stale batch rows
    STOCKPOS_RETRY_ATTEMPTS = int(os.environ.get("STOCKPOS_RETRY_ATTEMPTS", "3"))
    STOCKPOS_RETRY_BACKOFF = float(os.environ.get("STOCKPOS_RETRY_BACKOFF", "0.1"))

    # Receives dated further ahead than this are rejected
    STOCKPOS_FUTURE_TOLERANCE_MINUTES = 2
