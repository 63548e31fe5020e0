"""Settings for the timer tracker, read once at import time.

Values come from the environment (or a .env file next to where the app is
started). Everything has a working default so the app runs unconfigured.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# Directory where the package lives (resources, not user data)
APP_DIR = Path(__file__).resolve().parent

# User data: timer store, OAuth token, exported reminders
DATA_DIR = Path(os.getenv("REFTIMER_DATA_DIR", Path.home() / ".eve-reftimer")).expanduser()
STORE_PATH = DATA_DIR / "timers.pickle"
CRED_PATH = Path(os.getenv("REFTIMER_CREDENTIALS", DATA_DIR / "credentials.json")).expanduser()
TOKEN_PATH = DATA_DIR / "token.pickle"
ICS_DIR = Path(os.getenv("REFTIMER_ICS_DIR", DATA_DIR / "reminders")).expanduser()

# "local" follows the machine; EVE time is "UTC"
DEFAULT_TZ = "local"
TIMEZONE = os.getenv("REFTIMER_TZ", DEFAULT_TZ)

# google, ics or none
CALENDAR_BACKEND = os.getenv("REFTIMER_CALENDAR", "ics").strip().lower()
CALENDAR_TIMEOUT_SECONDS = float(os.getenv("REFTIMER_CALENDAR_TIMEOUT", 120))

_alarms_str = os.getenv("REFTIMER_ALARMS", "60,15")
REMINDER_ALARMS_MIN = [
    int(m.strip()) for m in _alarms_str.split(",") if m.strip().isdigit()
][:3]
REMINDER_LENGTH_MIN = int(os.getenv("REFTIMER_REMINDER_LENGTH", 15))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

if CALENDAR_BACKEND not in ("google", "ics", "none"):
    logger.warning("Unknown REFTIMER_CALENDAR %r, calendar sync disabled", CALENDAR_BACKEND)
    CALENDAR_BACKEND = "none"
