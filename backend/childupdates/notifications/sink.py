"""Notification sinks: deliver a rendered notice to a role mailbox."""
from __future__ import annotations
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from childupdates.domain.common.errors import NotificationError
from childupdates.domain.update.models import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryReceipt:
    message_id: Optional[str]
    provider: str


class NotificationSink(ABC):

    @abstractmethod
    def send(self, to_role: Role, subject: str, html_body: str, text_body: Optional[str] = None) -> DeliveryReceipt:
        """Deliver or raise NotificationError. Never retries."""
        ...


class LogNotificationSink(NotificationSink):
    """Writes notices to the log instead of sending them. Used when no relay is configured."""

    def __init__(self, role_addresses: Dict[str, str]):
        self._addresses = role_addresses

    def send(self, to_role: Role, subject: str, html_body: str, text_body: Optional[str] = None) -> DeliveryReceipt:
        message_id = f"log-{uuid.uuid4().hex[:12]}"
        logger.info(
            "Notification (not sent): to=%s subject=%r id=%s",
            self._addresses.get(to_role.value, to_role.value), subject, message_id,
        )
        return DeliveryReceipt(message_id=message_id, provider="log")


class WebhookNotificationSink(NotificationSink):
    """POSTs the message as JSON to an HTTP mail relay."""

    def __init__(self, url: str, role_addresses: Dict[str, str], token: str = "", timeout: float = 10.0):
        self._url = url
        self._addresses = role_addresses
        self._timeout = timeout
        self._headers = {"Content-Type": "application/json"}
        if token:
            self._headers["Authorization"] = f"Bearer {token}"

    def send(self, to_role: Role, subject: str, html_body: str, text_body: Optional[str] = None) -> DeliveryReceipt:
        address = self._addresses.get(to_role.value)
        if not address:
            raise NotificationError(f"No mailbox configured for role '{to_role.value}'.")

        body = {"to": address, "subject": subject, "html": html_body, "text": text_body or ""}
        try:
            res = requests.post(self._url, json=body, headers=self._headers, timeout=self._timeout)
            res.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(f"Notification relay failed: {e}") from e

        try:
            data = res.json()
        except ValueError:
            data = None
        message_id = data.get("messageId") if isinstance(data, dict) else None
        return DeliveryReceipt(message_id=message_id, provider="webhook")
