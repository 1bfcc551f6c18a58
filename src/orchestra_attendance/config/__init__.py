import os


def get_settings_module() -> str:
    """Settings module for the APP_ENV environment (development by default)."""
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "orchestra_attendance.config.production"

    if env in {"test", "testing"}:
        return "orchestra_attendance.config.testing"

    return "orchestra_attendance.config.development"
