"""SQLite connection + schema initialisation."""
from __future__ import annotations
import logging
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Optional

import bcrypt

from childupdates.core import config

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "..", "migrations")

# username -> (role, display name); each seeded with its username as the password
_SEED_USERS = {
    "admin": ("reviewer", "Administrator"),
    "field-updates": ("field_submitter", "Field Updates"),
    "academics": ("academic_submitter", "Academics"),
}


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path or config.DATABASE_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def init_db(db_path: Optional[str] = None) -> None:
    """Run all migration SQL files against the database."""
    path = db_path or config.DATABASE_PATH
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = get_connection(path)
    try:
        for name in sorted(os.listdir(_MIGRATIONS_DIR)):
            if not name.endswith(".sql"):
                continue
            with open(os.path.join(_MIGRATIONS_DIR, name), "r", encoding="utf-8") as f:
                conn.executescript(f.read())
        conn.commit()
    finally:
        conn.close()
    _seed_role_users(path)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def _seed_role_users(db_path: str) -> None:
    """Insert the three role accounts on first start."""
    conn = get_connection(db_path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        if count:
            return
        for username, (role, display_name) in _SEED_USERS.items():
            conn.execute(
                """
                INSERT INTO users (id, username, password_hash, role, display_name, email, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(uuid.uuid4()),
                    username,
                    hash_password(username),
                    role,
                    display_name,
                    config.ROLE_ADDRESSES[role],
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
        conn.commit()
        logger.info("Seeded %d role accounts", len(_SEED_USERS))
    finally:
        conn.close()
