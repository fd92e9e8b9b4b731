"""
Runtime configuration.

Values come from the process environment (optionally seeded from a .env file).
"""

import os
from datetime import time
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./courtbook.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    CORS_ORIGINS.extend(o.strip() for o in _extra.split(",") if o.strip())

# Rate applied when a court has no hourly price configured
FALLBACK_HOURLY_RATE = Decimal(os.getenv("FALLBACK_HOURLY_RATE", "100.00"))

# Hard cap on generated occurrences per recurring booking
RECURRENCE_MAX_OCCURRENCES = int(os.getenv("RECURRENCE_MAX_OCCURRENCES", "52"))

DEFAULT_OPENING_TIME = _parse_hhmm(os.getenv("DEFAULT_OPENING_TIME", "06:00"))
DEFAULT_CLOSING_TIME = _parse_hhmm(os.getenv("DEFAULT_CLOSING_TIME", "22:00"))

AVAILABILITY_SLOT_MINUTES = int(os.getenv("AVAILABILITY_SLOT_MINUTES", "60"))
