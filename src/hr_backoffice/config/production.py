import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_backoffice"),
}

JWT_SECRET = os.getenv("JWT_SECRET", "please-set-JWT_SECRET")
JWT_TTL_SECONDS = int(os.getenv("JWT_TTL_SECONDS", str(30 * 24 * 3600)))

ORG_TIMEZONE = os.getenv("ORG_TIMEZONE", "Asia/Kolkata")
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "/var/lib/hr_backoffice/uploads")
FILE_BASE_URL = os.getenv("FILE_BASE_URL", "/files")

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
SYNC_PERMISSIONS_ON_START = bool(int(os.getenv("SYNC_PERMISSIONS_ON_START", "1")))
