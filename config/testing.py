import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_attendance_test"),
}

JWT_SECRET = "test-jwt-secret"
JWT_ALGORITHM = "HS256"

CACHE_BACKEND = "memory"
REDIS_URL = ""
CACHE_TTL_SECONDS = 60

NOTIFICATION_URL = ""
NOTIFICATION_TIMEOUT_SECONDS = 1.0
NOTIFICATION_WORKERS = 1

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False
