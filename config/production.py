import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_tracker"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

EVIDENCE_DIR = os.getenv("EVIDENCE_DIR", "/var/lib/shift-tracker/evidence")
EVIDENCE_BASE_URL = os.getenv("EVIDENCE_BASE_URL", "/evidence")

REQUIRE_END_EVIDENCE = bool(int(os.getenv("REQUIRE_END_EVIDENCE", "0")))

LOCAL_TIMEZONE = os.getenv("LOCAL_TIMEZONE", "Europe/Dublin")
CHART_WINDOW_DAYS = int(os.getenv("CHART_WINDOW_DAYS", "7"))
CHECKLIST_VERSION = int(os.getenv("CHECKLIST_VERSION", "3"))

# JSON list of {"worker_id", "name", "role", "password_hash"}; unset = no built-in sign-in.
WORKER_ACCOUNTS_FILE = os.getenv("WORKER_ACCOUNTS_FILE")
