import os

from .base import *  # noqa: F401,F403
from .base import _db_config

SECRET_KEY = "test-secret"

DB_CONFIG = _db_config()

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

FETCH_MAX_RETRIES = 1
FETCH_BASE_DELAY = 0.0

AUTO_INIT_DB = False
