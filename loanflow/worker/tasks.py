from __future__ import annotations

import logging

from loanflow.worker.celery_app import celery_app


logger = logging.getLogger(__name__)


@celery_app.task(name="loanflow.start_credit_check")
def start_credit_check(application_id: str) -> None:
    """Ask the external risk scorer to assess an application.

    The scorer answers by calling ``process_risk_assessment``; this task only
    records that the request left the engine.
    """

    logger.info("credit_check_requested application_id=%s", application_id)


@celery_app.task(name="loanflow.deliver_notification")
def deliver_notification(notification_id: str, recipient_id: str, kind: str) -> None:
    """Hand a queued notification to the delivery channels (push/email/SMS)."""

    logger.info(
        "notification_handed_off notification_id=%s recipient_id=%s kind=%s",
        notification_id,
        recipient_id,
        kind,
    )
