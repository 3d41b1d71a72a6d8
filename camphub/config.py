import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./camphub.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "camphub_session")
SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(14 * 24 * 3600)))
SESSION_HTTPS_ONLY = os.getenv("SESSION_HTTPS_ONLY", "false").lower() == "true"

# Frontend base URL used in signing links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Redis cache (connection settings are read by rate_limiter.get_redis_client)
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "CampHub <noreply@camphub.app>")

# Signature requests
# 0 disables the default expiry window
SIGNATURE_REQUEST_EXPIRY_DAYS = int(os.getenv("SIGNATURE_REQUEST_EXPIRY_DAYS", "30"))
SIGNATURE_RATE_LIMIT = int(os.getenv("SIGNATURE_RATE_LIMIT", "30"))
SIGNATURE_RATE_WINDOW_SECONDS = int(os.getenv("SIGNATURE_RATE_WINDOW_SECONDS", "60"))
