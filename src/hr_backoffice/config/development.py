import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_backoffice"),
}

JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret")
JWT_TTL_SECONDS = int(os.getenv("JWT_TTL_SECONDS", str(30 * 24 * 3600)))

ORG_TIMEZONE = os.getenv("ORG_TIMEZONE", "Asia/Kolkata")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
FILE_BASE_URL = os.getenv("FILE_BASE_URL", "/files")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
SYNC_PERMISSIONS_ON_START = bool(int(os.getenv("SYNC_PERMISSIONS_ON_START", "1")))
