import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "hr_backoffice_test"),
}

JWT_SECRET = "test-jwt-secret"
JWT_TTL_SECONDS = 3600

ORG_TIMEZONE = "Asia/Kolkata"
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "/tmp/hr_backoffice_uploads")
FILE_BASE_URL = "/files"

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
SYNC_PERMISSIONS_ON_START = False
