"""Dependency injection container — wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from childupdates.application.compliance_app_service import ComplianceAppService
from childupdates.application.sponsor_request_service import SponsorRequestService
from childupdates.application.update_app_service import UpdateAppService
from childupdates.core import config
from childupdates.domain.compliance.escalation import EscalationPolicy, ReminderSchedule
from childupdates.domain.throttling.rate_limiter import SlidingWindowRateLimiter
from childupdates.domain.update.models import ReportType
from childupdates.notifications.sink import LogNotificationSink, NotificationSink, WebhookNotificationSink
from childupdates.persistence.repositories.sqlite.sqlite_record_store import SqliteRecordStore


@lru_cache(maxsize=1)
def get_record_store() -> SqliteRecordStore:
    return SqliteRecordStore()


@lru_cache(maxsize=1)
def get_notification_sink() -> NotificationSink:
    if config.NOTIFY_WEBHOOK_URL:
        return WebhookNotificationSink(
            url=config.NOTIFY_WEBHOOK_URL,
            role_addresses=config.ROLE_ADDRESSES,
            token=config.NOTIFY_WEBHOOK_TOKEN,
            timeout=config.NOTIFY_TIMEOUT_SECONDS,
        )
    return LogNotificationSink(role_addresses=config.ROLE_ADDRESSES)


@lru_cache(maxsize=1)
def get_rate_limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(cleanup_interval_seconds=config.RATE_LIMIT_CLEANUP_SECONDS)


@lru_cache(maxsize=1)
def get_escalation_policy() -> EscalationPolicy:
    return EscalationPolicy(
        {rt: ReminderSchedule.from_config(config.REMINDER_SCHEDULES[rt.value]) for rt in ReportType}
    )


@lru_cache(maxsize=1)
def get_update_app_service() -> UpdateAppService:
    return UpdateAppService(store=get_record_store())


@lru_cache(maxsize=1)
def get_compliance_app_service() -> ComplianceAppService:
    return ComplianceAppService(
        store=get_record_store(),
        sink=get_notification_sink(),
        policy=get_escalation_policy(),
        form_urls=config.FORM_URLS,
        field_deadline_day=config.FIELD_DEADLINE_DAY,
        academic_term_deadlines=config.ACADEMIC_TERM_DEADLINES,
        academic_grace_days=config.ACADEMIC_GRACE_DAYS,
        overdue_threshold_days=config.OVERDUE_THRESHOLD_DAYS,
    )


@lru_cache(maxsize=1)
def get_sponsor_request_service() -> SponsorRequestService:
    return SponsorRequestService(store=get_record_store())


def reset_container() -> None:
    """Drop every cached singleton (tests swap the database between modules)."""
    for provider in (
        get_record_store,
        get_notification_sink,
        get_rate_limiter,
        get_escalation_policy,
        get_update_app_service,
        get_compliance_app_service,
        get_sponsor_request_service,
    ):
        provider.cache_clear()
