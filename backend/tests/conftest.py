"""Shared fixtures: a throwaway SQLite store, a recording notification sink, child factories."""
from typing import List, Optional

import pytest

from childupdates.domain.common.errors import NotificationError
from childupdates.domain.update.models import Child, ChildStatus, Role
from childupdates.notifications.sink import DeliveryReceipt, NotificationSink
from childupdates.persistence import db
from childupdates.persistence.repositories.sqlite.sqlite_record_store import SqliteRecordStore

FIELD_PAYLOAD = {
    "physical_wellbeing": "Good",
    "emotional_wellbeing": "Good",
    "school_engagement": "Engaged",
    "sponsor_narrative": "Had a great month and joined the football team.",
}

ACADEMIC_PAYLOAD = {
    "attendance_percent": 92,
    "english_grade": 81,
    "math_grade": 74.5,
    "teacher_comment": "Steady progress.",
}


class RecordingSink(NotificationSink):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[dict] = []

    def send(self, to_role: Role, subject: str, html_body: str, text_body: Optional[str] = None) -> DeliveryReceipt:
        if self.fail:
            raise NotificationError("relay unavailable")
        self.sent.append({"to_role": to_role, "subject": subject, "html": html_body, "text": text_body})
        return DeliveryReceipt(message_id=f"msg-{len(self.sent)}", provider="test")


def make_child(child_id: str, status: ChildStatus = ChildStatus.ACTIVE, first_name: Optional[str] = None) -> Child:
    return Child(child_id=child_id, first_name=first_name or f"Child {child_id}", status=status)


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    # Store tests never log in; skip the bcrypt work in the seed step.
    monkeypatch.setattr(db, "hash_password", lambda password: f"plain:{password}")
    path = str(tmp_path / "test.db")
    db.init_db(path)
    return path


@pytest.fixture
def store(db_path):
    return SqliteRecordStore(db_path)


@pytest.fixture
def seed_children(store):
    def _seed(*children: Child) -> None:
        for child in children:
            store.upsert_child(child)
    return _seed


@pytest.fixture
def sink():
    return RecordingSink()
