import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_tracker"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# "memory" keeps everything in-process (lost on restart); "mysql" uses DB_CONFIG.
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory")

# If enabled (mysql backend), app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

EVIDENCE_DIR = os.getenv("EVIDENCE_DIR", "instance/evidence")
EVIDENCE_BASE_URL = os.getenv("EVIDENCE_BASE_URL", "/evidence")

# Check-out photo policy: 1 = a photo is required to finish a shift.
REQUIRE_END_EVIDENCE = bool(int(os.getenv("REQUIRE_END_EVIDENCE", "0")))

LOCAL_TIMEZONE = os.getenv("LOCAL_TIMEZONE", "Europe/Dublin")
CHART_WINDOW_DAYS = int(os.getenv("CHART_WINDOW_DAYS", "7"))
CHECKLIST_VERSION = int(os.getenv("CHECKLIST_VERSION", "3"))

# JSON list of {"worker_id", "name", "role", "password_hash"}; unset = no built-in sign-in.
WORKER_ACCOUNTS_FILE = os.getenv("WORKER_ACCOUNTS_FILE")
