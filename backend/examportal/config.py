from dotenv import load_dotenv
import os

load_dotenv()


def _as_bool(value, default=False):
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET = os.getenv("SECRET", "change-me")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./examportal.db")
SCHEMA_SEARCH_PATH = os.getenv("SCHEMA_SEARCH_PATH")
SQL_ECHO = _as_bool(os.getenv("SQL_ECHO"))
JWT_LIFETIME_SECONDS = int(os.getenv("JWT_LIFETIME_SECONDS", "43200"))

# used when no 'exam_portal_enabled' row exists in the settings table
EXAM_PORTAL_ENABLED = _as_bool(os.getenv("EXAM_PORTAL_ENABLED"), default=True)

# NOTE: exact origins used by the frontend dev server (no trailing slash)
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
    ).split(",")
    if o.strip()
]
