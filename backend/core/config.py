"""
Configuration for the Degree Pathway Planner Backend

Settings come from the environment, optionally loaded from backend/.env.
Catalog data lives in Cloud Firestore and is read through the Firebase
Admin SDK; Redis is an optional cache in front of it.
"""

import os
from pathlib import Path

import firebase_admin
from firebase_admin import credentials, firestore
from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).parent.parent
load_dotenv(BACKEND_DIR / ".env")


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_list(name: str, default: str):
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


# Firebase project settings
FIREBASE_CONFIG = {
    "projectId": os.getenv("FIREBASE_PROJECT_ID"),
    "storageBucket": os.getenv("FIREBASE_STORAGE_BUCKET"),
}
SERVICE_ACCOUNT_PATH = os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH", "serviceAccountKey.json")

# Frontend origins allowed by CORS (comma separated)
CORS_ORIGINS = _env_list("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173")

# Firestore caps the number of values in an "in" filter
FIRESTORE_IN_LIMIT = _env_int("FIRESTORE_IN_LIMIT", 30)

# Course slots per generated planner quarter
PLANNER_SLOTS_PER_QUARTER = _env_int("PLANNER_SLOTS_PER_QUARTER", 3)

# Redis (REDIS_URL takes precedence over host/port)
REDIS_URL = os.getenv("REDIS_URL", "")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = _env_int("REDIS_PORT", 6379)
REDIS_DB = _env_int("REDIS_DB", 0)
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD") or None

# Cache TTLs in seconds
COURSE_CODE_TTL = _env_int("CACHE_COURSE_CODE_TTL", 600)
PREFIX_MATCH_TTL = _env_int("CACHE_PREFIX_MATCH_TTL", 600)

_db = None


def _service_account_file():
    """First existing key file: next to the backend, under ./backend, or as given"""
    for candidate in (
        BACKEND_DIR / SERVICE_ACCOUNT_PATH,
        Path("backend") / SERVICE_ACCOUNT_PATH,
        Path(SERVICE_ACCOUNT_PATH),
    ):
        if candidate.exists():
            return candidate
    return None


def initialize_firebase():
    """
    Initialize the Firebase Admin app once and return a Firestore client.

    Without a service account key, application default credentials are
    used (cloud environments).
    """
    global _db

    if _db is not None:
        return _db

    if not firebase_admin._apps:
        key_file = _service_account_file()
        if key_file is not None:
            firebase_admin.initialize_app(credentials.Certificate(str(key_file)))
        else:
            firebase_admin.initialize_app(options={"projectId": FIREBASE_CONFIG["projectId"]})

    _db = firestore.client()
    return _db


def get_firestore_client():
    """Firestore client, initializing Firebase on first use."""
    return _db if _db is not None else initialize_firebase()
