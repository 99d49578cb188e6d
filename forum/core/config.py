import os
import re
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# Generation API Configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or None
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
GEMINI_TIMEOUT = float(os.getenv("GEMINI_TIMEOUT", "30"))

# Server Configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
ENVIRONMENT = os.getenv("ENVIRONMENT", "production").lower()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Security Configuration
RATE_LIMIT_WINDOW = os.getenv("RATE_LIMIT_WINDOW", "1m")
RATE_LIMIT_MAX = int(os.getenv("RATE_LIMIT_MAX", "60"))
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:5173")
RESPONSE_SIZE_LIMIT = int(os.getenv("RESPONSE_SIZE_LIMIT", str(64 * 1024)))
MAX_BODY_SIZE = int(os.getenv("MAX_BODY_SIZE", str(10 * 1024 * 1024)))

DEFAULT_WINDOW_SECONDS = 60
_UNITS = {"s": 1, "m": 60, "h": 3600}


def parse_duration(value: str) -> int:
    """Converts '30s', '1m', '2h' or a bare number of seconds to seconds."""
    match = re.fullmatch(r"\s*(\d+)\s*([smh]?)\s*", value or "")
    if not match:
        return DEFAULT_WINDOW_SECONDS
    amount = int(match.group(1))
    if amount <= 0:
        return DEFAULT_WINDOW_SECONDS
    return amount * _UNITS.get(match.group(2) or "s")


RATE_LIMIT_WINDOW_SECONDS = parse_duration(RATE_LIMIT_WINDOW)


def allowed_origins():
    origins = ["http://localhost:5173", "http://localhost:3000"]
    if CORS_ORIGIN and CORS_ORIGIN not in origins:
        origins.append(CORS_ORIGIN)
    return origins


def is_development() -> bool:
    return ENVIRONMENT == "development"
