import os

from .base import *  # noqa: F401,F403

SECRET_KEY = "test-secret"
JWT_SECRET = "test-jwt-secret"
JWT_REFRESH_SECRET = "test-jwt-refresh-secret"
MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "school_mis_test")
SESSION_BACKEND = "memory"
EMAIL_HOST = ""

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
