import os


def _db_config(default_password: str = "") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "orchestra_attendance"),
    }


# Program (sede) used when a request does not name one.
DEFAULT_PROGRAM_ID = os.getenv("DEFAULT_PROGRAM_ID") or None

FETCH_MAX_RETRIES = int(os.getenv("FETCH_MAX_RETRIES", "3"))
FETCH_BASE_DELAY = float(os.getenv("FETCH_BASE_DELAY", "1.0"))
TREND_SLOPE_THRESHOLD = float(os.getenv("TREND_SLOPE_THRESHOLD", "0.5"))
