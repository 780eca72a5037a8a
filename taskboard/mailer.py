# taskboard/mailer.py
"""Reminder delivery over SMTP."""

from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from taskboard.config import Settings
from taskboard.errors import TransientDeliveryFailure
from taskboard.models import Task, User

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d %H:%M UTC"


class MailTransport(Protocol):
    """Sends one message. Raises TransientDeliveryFailure when it cannot."""

    def send(self, to: str, subject: str, html_body: str) -> None: ...


class ReminderDelivery(Protocol):
    """Delivers a task reminder to its owner. Safe to call more than once."""

    def deliver(self, task: Task, owner: User) -> bool: ...


class SmtpTransport:
    """MailTransport backed by smtplib. One connection per message."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        username: str = "",
        password: str = "",
        starttls: bool = True,
        timeout: float = 30.0,
        sender: str = "todo-app@localhost",
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._starttls = starttls
        self._timeout = timeout
        self._sender = sender

    @classmethod
    def from_settings(cls, settings: Settings) -> SmtpTransport:
        return cls(
            settings.smtp_host,
            settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            timeout=settings.smtp_timeout,
            sender=settings.mail_from,
        )

    def _connect(self) -> smtplib.SMTP:
        client = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        try:
            if self._starttls:
                client.starttls()
            if self._username:
                client.login(self._username, self._password)
        except (smtplib.SMTPException, OSError):
            client.close()
            raise
        return client

    def verify(self) -> bool:
        """Open a connection and log in, to check the configuration at startup."""
        try:
            client = self._connect()
            client.quit()
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email configuration check failed host=%s: %s", self._host, exc)
            return False
        logger.info("Email configuration verified host=%s", self._host)
        return True

    def send(self, to: str, subject: str, html_body: str) -> None:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(html_body, subtype="html")

        try:
            client = self._connect()
            try:
                client.send_message(message)
            finally:
                client.quit()
        except (smtplib.SMTPException, OSError) as exc:
            raise TransientDeliveryFailure(f"SMTP delivery to {to} failed: {exc}") from exc


def build_reminder_email(task: Task) -> tuple[str, str]:
    """Return (subject, html body) for a task reminder."""
    due = task.due_date.strftime(DATE_FORMAT) if task.due_date else "No due date"
    priority = getattr(task.priority, "value", task.priority)
    subject = f"Reminder: {task.title} - Due Soon"
    body = (
        "<h2>Task Reminder</h2>\n"
        "<p>This is a reminder for your task:</p>\n"
        f"<h3>{html.escape(task.title)}</h3>\n"
        f"<p><strong>Description:</strong> {html.escape(task.description or 'No description')}</p>\n"
        f"<p><strong>Due Date:</strong> {due}</p>\n"
        f"<p><strong>Priority:</strong> {html.escape(str(priority))}</p>\n"
        f"<p><strong>Category:</strong> {html.escape(task.category or 'No category')}</p>\n"
        "<p>Please complete this task before the due date.</p>\n"
    )
    return subject, body


class EmailReminderDelivery:
    """ReminderDelivery that emails the task owner."""

    def __init__(self, transport: MailTransport) -> None:
        self._transport = transport

    def deliver(self, task: Task, owner: User) -> bool:
        subject, body = build_reminder_email(task)
        try:
            self._transport.send(owner.email, subject, body)
        except TransientDeliveryFailure as exc:
            logger.warning("Reminder delivery failed task_id=%s: %s", task.id, exc)
            return False
        logger.info("Reminder email sent task_id=%s to=%s", task.id, owner.email)
        return True
