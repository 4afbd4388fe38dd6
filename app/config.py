import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./hospital_booking.db")

# Seconds a SQLite writer waits for the lock before giving up
DB_BUSY_TIMEOUT = float(os.getenv("DB_BUSY_TIMEOUT", "30"))

# Expiry sweep cadence (seconds)
SLOT_SWEEP_INTERVAL_SECONDS = float(os.getenv("SLOT_SWEEP_INTERVAL_SECONDS", "60"))

# Capacity used when neither the request nor the facility gives one
DEFAULT_MAX_BOOKINGS = int(os.getenv("DEFAULT_MAX_BOOKINGS", "5"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
