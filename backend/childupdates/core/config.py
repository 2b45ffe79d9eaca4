import json
import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))


def env_int(name: str, default: int, minimum: int, maximum: int) -> int:
    value = int(os.getenv(name, str(default)))
    if not minimum <= value <= maximum:
        raise ValueError(f"{name} must be between {minimum} and {maximum}, got {value}")
    return value


SECRET_KEY: str = os.getenv("SECRET_KEY", "child-updates-dev-secret-change-in-prod")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))  # 8h

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Database, stored in backend/data/
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "app.db"),
)

# Compliance cron: requests must carry "Authorization: Bearer <CRON_SECRET>"
CRON_SECRET: str = os.getenv("CRON_SECRET", "")

# ------------------------------------------------------------------
# Role mailboxes (a role is a shared inbox, never a person)
# ------------------------------------------------------------------
ROLE_ADDRESSES: dict[str, str] = {
    "field_submitter": os.getenv("FIELD_UPDATES_EMAIL", "field-updates@beanumber.org"),
    "academic_submitter": os.getenv("ACADEMICS_EMAIL", "academics@beanumber.org"),
    "reviewer": os.getenv("ADMIN_EMAIL", "admin@beanumber.org"),
}

# Intake forms linked from reminder emails
FORM_URLS: dict[str, str] = {
    "field": os.getenv("FIELD_FORM_URL", "https://forms.google.com/field-intake"),
    "academic": os.getenv("ACADEMIC_FORM_URL", "https://forms.google.com/academic-intake"),
}

# Notification relay; leave the URL empty to log notices instead of sending them
NOTIFY_WEBHOOK_URL: str = os.getenv("NOTIFY_WEBHOOK_URL", "")
NOTIFY_WEBHOOK_TOKEN: str = os.getenv("NOTIFY_WEBHOOK_TOKEN", "")
NOTIFY_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "10"))

# ------------------------------------------------------------------
# Reporting calendar
# ------------------------------------------------------------------
# Field updates are monthly ("YYYY-MM") and due on this day of the month,
# or on the last day of shorter months.
FIELD_DEADLINE_DAY: int = env_int("FIELD_DEADLINE_DAY", 28, 1, 31)

# Days before the deadline on which each reminder tier fires; "final" fires on the deadline.
REMINDER_SCHEDULES: dict[str, dict[str, int]] = {
    "field": {"initial": FIELD_DEADLINE_DAY - 1, "follow_up": 5, "final": 0},
    "academic": {"initial": 14, "follow_up": 3, "final": 0},
}

# Academic terms are labelled externally, e.g. {"2026-T1": "2026-04-10"}
ACADEMIC_TERM_DEADLINES: dict[str, str] = json.loads(os.getenv("ACADEMIC_TERM_DEADLINES", "{}"))

# A term stays "current" for this many days after its deadline so escalations keep firing.
ACADEMIC_GRACE_DAYS: int = int(os.getenv("ACADEMIC_GRACE_DAYS", "30"))

# ------------------------------------------------------------------
# Rate limits
# ------------------------------------------------------------------
RATE_LIMITS: dict[str, dict[str, int]] = {
    "login": {"max_requests": 5, "window_seconds": 15 * 60},
    "update-submission": {"max_requests": 20, "window_seconds": 60 * 60},
    "update-request": {"max_requests": 3, "window_seconds": 24 * 60 * 60},
    "sponsor-verify": {"max_requests": 10, "window_seconds": 15 * 60},
}

UPDATE_REQUEST_THROTTLE_DAYS: int = 90

# Children with no update for longer than this are listed as overdue in the admin digest.
OVERDUE_THRESHOLD_DAYS: int = env_int("OVERDUE_THRESHOLD_DAYS", 90, 1, 3650)

# Sponsor sessions are issued by /sponsors/verify and scoped to one sponsor code.
SPONSOR_SESSION_DAYS: int = int(os.getenv("SPONSOR_SESSION_DAYS", "30"))

RATE_LIMIT_CLEANUP_SECONDS: int = int(os.getenv("RATE_LIMIT_CLEANUP_SECONDS", "300"))
