"""Settings shared by every environment; each module overrides what differs."""
import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/school_mis")
MONGODB_DATABASE = os.getenv("MONGODB_DATABASE", "school_mis")
MONGODB_TIMEOUT_MS = int(os.getenv("MONGODB_TIMEOUT_MS", "5000"))

JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret")
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "dev-jwt-refresh-secret")
JWT_REFRESH_EXPIRE_DAYS = int(os.getenv("JWT_REFRESH_EXPIRE_DAYS", "30"))

# Idle window for the server-side session (seconds)
SESSION_IDLE_TIMEOUT_SECONDS = int(os.getenv("SESSION_IDLE_TIMEOUT_SECONDS", "300"))
# "memory" keeps sessions in-process; "mongo" shares them across instances
SESSION_BACKEND = os.getenv("SESSION_BACKEND", "memory")

EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASS = os.getenv("EMAIL_PASS", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@schoolmis.com")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
