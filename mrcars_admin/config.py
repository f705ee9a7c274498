# config.py
import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    # Data backend (managed Postgres behind a REST gateway)
    DATA_API_URL = os.getenv("DATA_API_URL", "http://localhost:54321")
    DATA_API_KEY = os.getenv("DATA_API_KEY", "")
    DATA_API_TIMEOUT = float(os.getenv("DATA_API_TIMEOUT", "6"))

    # Session / auth
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")
    JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
    JWT_ALGO = "HS256"
    SESSION_COOKIE_SAMESITE = "Lax"

    # Tables
    PAGE_SIZE = int(os.getenv("PAGE_SIZE", "10"))

    # Settings page polls system stats on this interval
    STATS_REFRESH_SECONDS = int(os.getenv("STATS_REFRESH_SECONDS", "30"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    PORT = int(os.getenv("PORT", "5003"))
