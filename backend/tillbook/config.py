# backend/tillbook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tillbook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tillbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sales tax in basis points (1000 = 10%)
    TAX_RATE_BPS = int(os.environ.get("TAX_RATE_BPS", "1000"))

    # bcrypt cost factor; tests lower it to keep fixtures fast
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Label printed on receipts for distribution-center sales
    DC_LABEL = os.environ.get("DC_LABEL", "Distribution Center")
