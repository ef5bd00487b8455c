import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic_scheduling.db")

# Create tables on startup (disable when schema is managed by migrations)
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS - comma separated list of origins allowed to call the API
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")

# Scheduling engine
# Size in minutes of the buckets claimed by an appointment in schedule_slot_claims.
# 1 claims exact minutes. Larger values make booking times off that grid invalid.
SLOT_BUCKET_MINUTES = int(os.getenv("SLOT_BUCKET_MINUTES", "1"))

# When true, holidays with a profile_id only block that professional.
# Default keeps tenant-wide matching: every holiday of the tenant applies.
PROFILE_SCOPED_HOLIDAYS = os.getenv("PROFILE_SCOPED_HOLIDAYS", "false").lower() == "true"
