"""
Application configuration.
Loads settings from environment variables or .env file.
"""
import os
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).resolve().parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./data/app.db")

# Timezone used to resolve dashboard periods ("today", "week", ...)
TIMEZONE = ZoneInfo(os.getenv("TIMEZONE", "UTC"))

# Environment: error details are only exposed outside production
APP_ENV = os.getenv("APP_ENV", "production")
IS_PRODUCTION = APP_ENV == "production"

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Server
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))

# Query limits
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MAX_SEARCH_TEXT_LENGTH = 500
MAX_EXPORT_DAYS = 31
