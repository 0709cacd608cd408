"""
Basic configuration

- Embedded database file and local fallback mirror locations
- Refresh polling interval
- CORS origins for development and production
- Supports environment variables for every setting
"""
import os

# Embedded SQLite database (":memory:" is accepted, mostly for tests)
DATABASE_PATH = os.getenv("DATABASE_PATH", "data/patient_registration.db")

# Set USE_DATABASE=false to start in fallback-only mode
USE_DATABASE = os.getenv("USE_DATABASE", "true").strip().lower() not in ("0", "false", "no", "off")

# Local fallback mirror: one JSON blob per key inside FALLBACK_DIR
FALLBACK_DIR = os.getenv("FALLBACK_DIR", "data")
FALLBACK_KEY = os.getenv("FALLBACK_KEY", "patients")

# Seconds between background refresh reads while the database is in use
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "1.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Default localhost origins for development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
]

# Get additional CORS origins from environment variable
ADDITIONAL_CORS_ORIGINS = os.getenv("CORS_ORIGINS", "").split(",") if os.getenv("CORS_ORIGINS") else []

# Filter out empty strings from split
ADDITIONAL_CORS_ORIGINS = [origin.strip() for origin in ADDITIONAL_CORS_ORIGINS if origin.strip()]

# Combine default and additional origins
CORS_ORIGINS = DEFAULT_CORS_ORIGINS + ADDITIONAL_CORS_ORIGINS
