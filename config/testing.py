import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "shift_tracker_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

STORE_BACKEND = "memory"
AUTO_INIT_DB = False

EVIDENCE_DIR = os.getenv("EVIDENCE_DIR", "instance/test-evidence")
EVIDENCE_BASE_URL = "/evidence"

REQUIRE_END_EVIDENCE = False

LOCAL_TIMEZONE = "Europe/Dublin"
CHART_WINDOW_DAYS = 7
CHECKLIST_VERSION = 3

WORKER_ACCOUNTS_FILE = None
