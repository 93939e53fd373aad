from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loanflow.config import Settings, settings as default_settings
from loanflow.models import NotificationRow
from loanflow.schemas.common import generate_id, utcnow
from loanflow.schemas.notification import NOTIFICATION_PAYLOADS, NotificationRead, NotificationType
from loanflow.worker.dispatch import enqueue_notification_delivery

logger = logging.getLogger(__name__)


def check_payload(event_type: NotificationType, payload: BaseModel) -> None:
    expected = NOTIFICATION_PAYLOADS[event_type]
    if not isinstance(payload, expected):
        raise TypeError(
            f"{event_type.value} expects {expected.__name__}, got {type(payload).__name__}"
        )


class NotificationService:
    """Fire-and-forget notification sink.

    ``send_notification`` returns immediately; recording the notification in
    the outbox and handing it to the delivery worker happen in a background
    task. Failures there are logged, never raised to the caller.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        settings: Settings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or default_settings
        self._pending: set[asyncio.Task] = set()

    def send_notification(
        self,
        recipient_id: str,
        event_type: NotificationType,
        payload: BaseModel,
    ) -> None:
        check_payload(event_type, payload)

        task = asyncio.get_running_loop().create_task(
            self._deliver(recipient_id, event_type, payload.model_dump(mode="json"))
        )
        self._pending.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("notification_failed error=%r", exc, exc_info=exc)

    async def _deliver(self, recipient_id: str, event_type: NotificationType, payload: dict) -> str:
        notification_id = generate_id("ntf")

        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    NotificationRow(
                        id=notification_id,
                        recipient_id=recipient_id,
                        kind=event_type.value,
                        payload=payload,
                        status="queued",
                        created_at=utcnow(),
                    )
                )

        try:
            handed_off = enqueue_notification_delivery(
                notification_id=notification_id,
                recipient_id=recipient_id,
                kind=event_type.value,
                settings=self._settings,
            )
        except Exception:
            logger.exception(
                "notification_handoff_failed notification_id=%s kind=%s", notification_id, event_type.value
            )
            await self._mark(notification_id, "failed")
            return notification_id

        if handed_off:
            await self._mark(notification_id, "handed_off")

        logger.info(
            "notification_queued notification_id=%s recipient_id=%s kind=%s",
            notification_id,
            recipient_id,
            event_type.value,
        )
        return notification_id

    async def _mark(self, notification_id: str, status: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(NotificationRow, notification_id)
                if row is not None:
                    row.status = status

    async def drain(self) -> None:
        """Wait for every in-flight notification task (shutdown, tests)."""

        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def list_for_recipient(self, recipient_id: str) -> list[NotificationRead]:
        async with self._session_factory() as session:
            res = await session.execute(
                select(NotificationRow)
                .where(NotificationRow.recipient_id == recipient_id)
                .order_by(NotificationRow.created_at)
            )
            return [NotificationRead.model_validate(r) for r in res.scalars().all()]


def notify_quietly(
    notifier: NotificationService,
    recipient_id: str,
    event_type: NotificationType,
    payload: BaseModel,
) -> None:
    """Send a notification; log instead of raising. The state change is already committed."""

    try:
        notifier.send_notification(recipient_id, event_type, payload)
    except Exception:
        logger.exception("notify_failed event=%s recipient_id=%s", event_type.value, recipient_id)
