from __future__ import annotations

import logging

from loanflow.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def enqueue_credit_check(*, application_id: str, settings: Settings | None = None) -> bool:
    """Enqueue credit-check initiation for an application.

    Must be non-fatal: failing to enqueue must never undo the stage change
    that triggered it. Returns True when the task was handed to Celery.
    """

    settings = settings or default_settings
    if not settings.celery_enabled:
        return False

    try:
        # Import lazily so the service can run without a broker configured.
        from loanflow.worker.tasks import start_credit_check

        start_credit_check.delay(application_id)
        return True
    except Exception:
        logger.exception("enqueue_failed task=start_credit_check application_id=%s", application_id)
        return False


def enqueue_notification_delivery(
    *,
    notification_id: str,
    recipient_id: str,
    kind: str,
    settings: Settings | None = None,
) -> bool:
    """Hand a stored notification to the delivery worker. Raises on broker errors."""

    settings = settings or default_settings
    if not settings.celery_enabled:
        return False

    from loanflow.worker.tasks import deliver_notification

    deliver_notification.delay(notification_id, recipient_id, kind)
    return True
