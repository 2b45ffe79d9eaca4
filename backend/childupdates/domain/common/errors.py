"""Exceptions raised by infrastructure adapters. The application layer turns them into Result failures."""
from __future__ import annotations


class ChildUpdatesError(Exception):
    pass


class StoreError(ChildUpdatesError):
    """The record store could not complete a read or write."""


class ConcurrentModificationError(StoreError):
    """A compare-and-swap update found a different revision than the caller read."""

    def __init__(self, record_id: str, expected_revision: int):
        super().__init__(f"Record '{record_id}' changed since revision {expected_revision}.")
        self.record_id = record_id
        self.expected_revision = expected_revision


class NotificationError(ChildUpdatesError):
    """The notification sink rejected or failed to deliver a message."""


class DuplicateSubmissionError(ChildUpdatesError):
    """A guarded insert found another live submission holding the same key."""

    def __init__(self, update_key: str, existing_id: str, existing_status: str):
        super().__init__(f"An update already exists for {update_key} (id {existing_id}, status {existing_status}).")
        self.update_key = update_key
        self.existing_id = existing_id
        self.existing_status = existing_status
