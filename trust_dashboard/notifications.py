"""Email batches and WhatsApp messages to donors.

Senders are thin: ``EmailDispatcher`` only needs something with a
``send(to, subject, body)`` method, so the batch loop can run against SMTP in
production and a fake in tests.
"""

from __future__ import annotations

import logging
import re
import smtplib
import time
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Any, Callable, Iterable, Mapping, Protocol
from urllib.parse import quote

import requests

from .config import Settings
from .errors import NotificationError
from .models import Donor
from .repositories import CommunicationRepository

logger = logging.getLogger(__name__)

DEFAULT_RECIPIENT_NAME = "Donor"
NAME_PLACEHOLDER = "{{name}}"


def personalize(template: str, name: str) -> str:
    return (template or "").replace(NAME_PLACEHOLDER, name)


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str = DEFAULT_RECIPIENT_NAME
    donor_id: int | None = None


def _as_recipient(entry: Any) -> Recipient | None:
    if isinstance(entry, Recipient):
        return entry if entry.email.strip() else None
    if isinstance(entry, str):
        email, name, donor_id = entry, None, None
    elif isinstance(entry, Donor):
        email, name, donor_id = entry.email, entry.name, entry.id
    elif isinstance(entry, Mapping):
        email, name = entry.get("email"), entry.get("name")
        donor_id = entry.get("donor_id", entry.get("id"))
    else:
        return None

    clean_email = str(email or "").strip()
    if not clean_email:
        return None
    return Recipient(
        email=clean_email,
        name=str(name or "").strip() or DEFAULT_RECIPIENT_NAME,
        donor_id=int(donor_id) if donor_id is not None else None,
    )


def normalize_recipients(raw: Iterable[Any]) -> list[Recipient]:
    """Accept plain addresses, ``{email, name}`` mappings, or donors; skip blank emails."""

    recipients: list[Recipient] = []
    for entry in raw or ():
        recipient = _as_recipient(entry)
        if recipient is None:
            logger.debug("Skipping recipient without an email address: %r", entry)
            continue
        recipients.append(recipient)
    return recipients


class EmailSender(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


@dataclass(frozen=True)
class BatchReport:
    success_count: int
    fail_count: int

    @property
    def all_failed(self) -> bool:
        return self.success_count == 0 and self.fail_count > 0

    @property
    def summary(self) -> str:
        return f"Sent {self.success_count} emails, failed {self.fail_count}"


class SmtpEmailSender:
    """STARTTLS SMTP sender; one connection per message."""

    def __init__(
        self,
        email: str,
        password: str,
        server: str,
        port: int,
        sender_name: str,
        timeout: float = 30.0,
    ) -> None:
        self.email = email
        self.password = password
        self.server = server
        self.port = port
        self.sender_name = sender_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpEmailSender":
        if not settings.has_smtp_credentials:
            raise NotificationError("Server configuration error: Missing SMTP credentials")
        return cls(
            email=settings.smtp_email or "",
            password=settings.smtp_password or "",
            server=settings.smtp_server,
            port=settings.smtp_port,
            sender_name=settings.sender_name,
        )

    def send(self, to: str, subject: str, body: str) -> None:
        message = MIMEText(body, "plain", "utf-8")
        message["From"] = f'"{self.sender_name}" <{self.email}>'
        message["To"] = to
        message["Subject"] = subject
        with smtplib.SMTP(self.server, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.email, self.password)
            server.send_message(message)


class EmailDispatcher:
    """Send one personalised email per recipient, in order, with a pause between sends."""

    def __init__(
        self,
        sender: EmailSender,
        delay_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
        communications: CommunicationRepository | None = None,
    ) -> None:
        self.sender = sender
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.communications = communications

    def _record(self, recipient: Recipient, subject: str, body: str, status: str) -> None:
        if self.communications is None or recipient.donor_id is None:
            return
        self.communications.log(
            donor_id=recipient.donor_id,
            channel="Email",
            subject=subject,
            content=body,
            status=status,
        )

    def send_batch(self, recipients: Iterable[Any], subject: str, body: str) -> BatchReport:
        batch = normalize_recipients(recipients)
        logger.info("Starting to send %d personalised emails", len(batch))

        success_count = 0
        fail_count = 0
        for index, recipient in enumerate(batch):
            if index and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

            personal_subject = personalize(subject, recipient.name)
            personal_body = personalize(body, recipient.name)
            try:
                self.sender.send(recipient.email, personal_subject, personal_body)
            except Exception as exc:
                # One bad address must not stop the rest of the batch.
                logger.error("Failed to send to %s: %s", recipient.email, exc)
                fail_count += 1
                self._record(recipient, personal_subject, personal_body, "Failed")
                continue
            success_count += 1
            self._record(recipient, personal_subject, personal_body, "Sent")

        report = BatchReport(success_count=success_count, fail_count=fail_count)
        logger.info("Finished sending. Success: %d, Failed: %d", success_count, fail_count)
        return report


def phone_digits(phone: str | None) -> str:
    return re.sub(r"\D", "", phone or "")


def whatsapp_chat_url(phone: str | None, message: str) -> str:
    digits = phone_digits(phone)
    if not digits:
        raise NotificationError("Donor has no phone number for WhatsApp.")
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


class WhatsAppLauncher:
    """Builds a click-to-chat link for one donor and logs the message as sent."""

    def __init__(self, communications: CommunicationRepository | None = None) -> None:
        self.communications = communications

    def open_chat(self, donor: Donor, message: str) -> str:
        content = personalize(message, donor.name or DEFAULT_RECIPIENT_NAME)
        url = whatsapp_chat_url(donor.phone, content)
        # Recorded as sent before the user actually sends it.
        if self.communications is not None:
            self.communications.log(donor_id=donor.id, channel="WhatsApp", content=content)
        logger.info("Opened WhatsApp chat for donor #%s", donor.id)
        return url


class WhatsAppCloudClient:
    """Template messages through the Meta WhatsApp Cloud API."""

    base_url = "https://graph.facebook.com"

    def __init__(
        self,
        token: str | None,
        phone_number_id: str | None,
        api_version: str = "v17.0",
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.token = token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhatsAppCloudClient":
        return cls(
            token=settings.whatsapp_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            api_version=settings.graph_api_version,
        )

    def send_template(self, to: str, template: str, language: str = "en_US") -> dict[str, Any]:
        if not self.token or not self.phone_number_id:
            logger.error("WhatsApp send skipped: missing credentials")
            raise NotificationError("Missing WhatsApp credentials")

        url = f"{self.base_url}/{self.api_version}/{self.phone_number_id}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "template",
            "template": {"name": template, "language": {"code": language}},
        }
        try:
            response = self.session.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("WhatsApp request to %s failed: %s", to, exc)
            raise NotificationError(f"WhatsApp request failed: {exc}") from exc

        if not response.ok:
            logger.error("WhatsApp API rejected message to %s: %s", to, response.text)
            raise NotificationError(f"WhatsApp API error {response.status_code}: {response.text}")
        return response.json()

    def send_template_batch(
        self,
        donors: Iterable[Donor],
        template: str,
        language: str = "en_US",
        communications: CommunicationRepository | None = None,
    ) -> BatchReport:
        success_count = 0
        fail_count = 0
        content = f"Template: {template}"
        for donor in donors:
            digits = phone_digits(donor.phone)
            status = "Sent"
            try:
                if not digits:
                    raise NotificationError(f"Donor #{donor.id} has no phone number")
                self.send_template(digits, template, language=language)
            except NotificationError as exc:
                logger.error("WhatsApp template to donor #%s failed: %s", donor.id, exc)
                status = "Failed"
            if status == "Sent":
                success_count += 1
            else:
                fail_count += 1
            if communications is not None:
                communications.log(donor_id=donor.id, channel="WhatsApp", content=content, status=status)
        logger.info("WhatsApp templates sent: %d, failed: %d", success_count, fail_count)
        return BatchReport(success_count=success_count, fail_count=fail_count)
