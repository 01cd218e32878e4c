"""Configuration for the appointment scheduling engine.

All deployment settings centralized here - override via environment or .env
without touching code.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Persistence
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///appointments.db")

# Slot granularity used when a doctor profile does not declare one
DEFAULT_SLOT_MINUTES = int(os.getenv("DEFAULT_SLOT_MINUTES", "30"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Store circuit breaker (fail fast when the database is down)
STORE_FAILURE_THRESHOLD = int(os.getenv("STORE_FAILURE_THRESHOLD", "5"))
STORE_RECOVERY_TIMEOUT = int(os.getenv("STORE_RECOVERY_TIMEOUT", "30"))

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
