"""Notification service for sending appointment push notifications via FCM."""

import asyncio
from typing import Any

import structlog
from firebase_admin import messaging

from samagra.core.resilience import bounded

logger = structlog.get_logger(__name__)


def user_topic(user_id: str) -> str:
    """FCM topic each signed-in client subscribes to for its own notifications."""
    return f"user-{user_id}"


class NotificationService:
    """Fire-and-forget appointment notifications.

    A failed notification never fails or rolls back the appointment change
    that triggered it; it is logged and dropped.
    """

    @staticmethod
    def build_message(to: str, subject: str, fields: dict[str, Any]) -> messaging.Message:
        """
        Build the FCM message for one recipient.

        Args:
            to: Recipient user id
            subject: Notification title
            fields: Template fields, sent as string data and summarized in the body

        Returns:
            FCM message addressed to the recipient's topic
        """
        data = {key: str(value) for key, value in fields.items() if value is not None}

        body_parts = []
        if data.get("appointment_date"):
            body_parts.append(data["appointment_date"])
        if data.get("start_time"):
            body_parts.append(f"{data['start_time']} - {data.get('end_time', '')}".strip(" -"))
        if data.get("status"):
            body_parts.append(f"Status: {data['status']}")

        return messaging.Message(
            topic=user_topic(to),
            notification=messaging.Notification(
                title=subject,
                body=", ".join(body_parts) or subject,
            ),
            data=data,
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(sound="default"),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default")),
            ),
        )

    @staticmethod
    async def send_appointment_notification(
        to: str | None,
        subject: str,
        fields: dict[str, Any],
    ) -> bool:
        """
        Send an appointment notification.

        Args:
            to: Recipient user id
            subject: Notification title
            fields: Template fields (date, times, status, names)

        Returns:
            True if FCM accepted the message, False otherwise
        """
        if not to:
            logger.warning("notification_skipped_no_recipient", subject=subject)
            return False

        try:
            message = NotificationService.build_message(to, subject, fields)
            message_id = await bounded(
                asyncio.to_thread(messaging.send, message),
                "fcm_send",
            )
        except Exception as e:
            logger.warning(
                "appointment_notification_failed",
                recipient=to,
                subject=subject,
                error=str(e),
            )
            return False

        logger.info(
            "appointment_notification_sent",
            recipient=to,
            subject=subject,
            message_id=message_id,
        )
        return True
