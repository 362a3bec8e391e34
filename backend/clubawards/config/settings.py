"""Application-wide configuration loaded from environment variables."""

import os

from dotenv import load_dotenv

load_dotenv()

# Redis
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")

# ── Award Engine ─────────────────────────────────────────────────────────

# Most recent eligible RSVPs scanned by the streak calculator
STREAK_WINDOW: int = int(os.getenv("STREAK_WINDOW", "50"))

# Row cap for "all history" queries (temporal patterns, milestones, reliability)
HISTORY_MAX_ROWS: int = int(os.getenv("HISTORY_MAX_ROWS", "5000"))

# A member is "active" for the bulk sweep if they responded to an RSVP this recently
ACTIVE_WINDOW_DAYS: int = int(os.getenv("ACTIVE_WINDOW_DAYS", "90"))

# ── Scheduled Job ────────────────────────────────────────────────────────

# Shared secret the external scheduler sends in the X-Cron-Secret header
CRON_SECRET: str = os.getenv("CRON_SECRET", "")

# ── Server Configuration ─────────────────────────────────────────────────

SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
