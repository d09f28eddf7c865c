"""Best-effort booking notifications.

Delivery runs after the booking transaction has committed. A failed email is
logged and dropped; it never reaches the caller and never undoes a booking.
"""

from __future__ import annotations

import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

from staymate.utils.config import Settings, get_settings
from staymate.utils.logger import get_logger


logger = get_logger(__name__)


class NotificationDeliveryError(Exception):
    """Raised by a transport when a message could not be handed off."""


@dataclass(frozen=True)
class Notification:
    recipient: str
    subject: str
    body: str


class NotificationTransport(Protocol):
    def send(self, notification: Notification) -> None: ...


class LoggingTransport:
    """Fallback transport used when no SMTP host is configured."""

    def send(self, notification: Notification) -> None:
        logger.info(
            "Notification for %s: %s",
            notification.recipient,
            notification.subject,
        )


class SmtpTransport:
    """Plain SMTP delivery with optional STARTTLS and login."""

    def __init__(self, settings: Settings) -> None:
        if not settings.smtp_host:
            raise ValueError("smtp_host is required for SMTP delivery")
        self._settings = settings

    def _build_message(self, notification: Notification) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.notification_sender
        message["To"] = notification.recipient
        message["Subject"] = notification.subject
        message.set_content(notification.body)
        return message

    def send(self, notification: Notification) -> None:
        try:
            with smtplib.SMTP(
                self._settings.smtp_host,
                self._settings.smtp_port,
                timeout=self._settings.smtp_timeout_seconds,
            ) as server:
                if self._settings.smtp_use_tls:
                    server.starttls()
                if self._settings.smtp_username and self._settings.smtp_password:
                    server.login(self._settings.smtp_username, self._settings.smtp_password)
                server.send_message(self._build_message(notification))
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationDeliveryError(
                f"SMTP delivery to {notification.recipient} failed: {exc}"
            ) from exc


class NotificationService:
    """Hands notifications to a transport without blocking the caller."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[NotificationTransport] = None,
    ) -> None:
        self._settings = settings or get_settings()
        if transport is not None:
            self._transport: NotificationTransport = transport
        elif self._settings.smtp_host:
            self._transport = SmtpTransport(self._settings)
        else:
            self._transport = LoggingTransport()
        self._executor: ThreadPoolExecutor | None = None
        if self._settings.notification_async:
            self._executor = ThreadPoolExecutor(
                max_workers=self._settings.notification_workers,
                thread_name_prefix="notify",
            )

    def deliver(self, notification: Notification) -> None:
        """Send now; raises NotificationDeliveryError on failure."""
        try:
            self._transport.send(notification)
        except NotificationDeliveryError:
            raise
        except Exception as exc:
            raise NotificationDeliveryError(str(exc)) from exc

    def dispatch(self, notification: Notification | None) -> None:
        """Fire-and-forget delivery. Failures are logged, never raised."""
        if notification is None or not self._settings.notifications_enabled:
            return
        if self._executor is None:
            self._deliver_and_log(notification)
            return
        try:
            future = self._executor.submit(self.deliver, notification)
        except RuntimeError:
            logger.warning("Notification executor is shut down; dropping %s", notification.subject)
            return
        future.add_done_callback(self._log_outcome)

    def _deliver_and_log(self, notification: Notification) -> None:
        try:
            self.deliver(notification)
        except NotificationDeliveryError as exc:
            logger.warning("Notification delivery failed: %s", exc)

    @staticmethod
    def _log_outcome(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("Notification delivery failed: %s", exc)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
