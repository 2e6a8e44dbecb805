"""Notification backends: the delivery contract and its console, SMTP and webhook variants."""
from __future__ import annotations

import os
import smtplib
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from email.message import EmailMessage as MIMEEmailMessage
from typing import Callable, Dict, Iterable, List, Mapping, Optional, TextIO, Tuple

import httpx

from .config import BackendConfig, ConfigError
from .contact import Contact


class NotificationError(RuntimeError):
    """Raised by a backend when a delivery attempt fails."""


def format_message(contact: Contact, today: Optional[date] = None) -> Tuple[str, str]:
    """Return the ``(subject, body)`` pair sent for ``contact``."""

    today = today or date.today()
    subject = f"Birthday: {contact.full_name}"
    age = contact.get_age(today)
    if age is None:
        body = f"Today is {contact.full_name}'s birthday."
    else:
        body = f"Today is {contact.full_name}'s birthday ({age} years old)."
    return subject, body


class NotificationBackend(ABC):
    """A delivery channel able to send a notification for a contact."""

    kind: str = ""

    def __init__(self, vendor: str) -> None:
        self._vendor = vendor

    @property
    def vendor(self) -> str:
        return self._vendor

    @abstractmethod
    def send_notification(self, contact: Contact, today: Optional[date] = None) -> None:
        """Attempt delivery once.

        Raises:
            NotificationError: when the channel rejects or cannot deliver the message.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} kind={self.kind} vendor={self.vendor}>"


class ConsoleBackend(NotificationBackend):
    """Print notifications to a stream (stdout by default)."""

    kind = "console"

    def __init__(self, vendor: str = "stdout", stream: Optional[TextIO] = None) -> None:
        super().__init__(vendor)
        self.stream = stream

    def send_notification(self, contact: Contact, today: Optional[date] = None) -> None:
        _, body = format_message(contact, today)
        timestamp = datetime.now().strftime("%H:%M:%S")
        stream = self.stream or sys.stdout
        try:
            print(f"[{timestamp}] NOTIFICATION: {body}", file=stream, flush=True)
        except (OSError, ValueError) as exc:
            raise NotificationError(f"cannot write to console: {exc}") from exc


@dataclass
class EmailMessage:
    subject: str
    body: str
    to: Iterable[str]


class EmailBackend(NotificationBackend):
    """Send one e-mail per notification through an SMTP relay."""

    kind = "email"

    def __init__(
        self,
        host: str,
        sender: str,
        recipients: Iterable[str],
        *,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = True,
        use_ssl: bool = False,
        timeout: float = 30.0,
        vendor: str = "smtp",
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ) -> None:
        super().__init__(vendor)
        self.host = host
        self.port = port
        self.sender = sender
        self.recipients = list(recipients)
        self.username = username
        self.password = password
        self.starttls = starttls and not use_ssl
        self.use_ssl = use_ssl
        self.timeout = timeout
        self._smtp_factory = smtp_factory or (smtplib.SMTP_SSL if use_ssl else smtplib.SMTP)

    def build_message(self, message: EmailMessage) -> MIMEEmailMessage:
        mime = MIMEEmailMessage()
        mime["Subject"] = message.subject
        mime["From"] = self.sender
        mime["To"] = ", ".join(message.to)
        mime.set_content(message.body)
        return mime

    def send_notification(self, contact: Contact, today: Optional[date] = None) -> None:
        subject, body = format_message(contact, today)
        mime = self.build_message(EmailMessage(subject=subject, body=body, to=self.recipients))
        try:
            with self._smtp_factory(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(mime)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"SMTP delivery to {self.host}:{self.port} failed: {exc}") from exc


class WebhookBackend(NotificationBackend):
    """POST a JSON payload to a chat or automation webhook."""

    kind = "webhook"

    def __init__(
        self,
        url: str,
        *,
        vendor: str = "generic",
        timeout: float = 10.0,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__(vendor)
        self.url = url
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._transport = transport

    def build_payload(self, contact: Contact, today: Optional[date] = None) -> Dict[str, object]:
        _, body = format_message(contact, today)
        return {
            "text": body,
            "contact": {
                "firstname": contact.firstname,
                "lastname": contact.lastname,
                "birthdate": contact.birthdate.isoformat() if contact.birthdate else None,
            },
        }

    def send_notification(self, contact: Contact, today: Optional[date] = None) -> None:
        payload = self.build_payload(contact, today)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(self.url, json=payload, headers=self.headers)
        except httpx.HTTPError as exc:
            raise NotificationError(f"webhook request failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationError(f"webhook answered HTTP {response.status_code}: {response.text[:200]}")


def _require(config: BackendConfig, key: str) -> object:
    value = config.options.get(key)
    if value in (None, "", []):
        raise ConfigError(f"{config.type} backend requires '{key}'")
    return value


def _build_console(config: BackendConfig) -> NotificationBackend:
    return ConsoleBackend(vendor=config.vendor or "stdout")


def _build_email(config: BackendConfig) -> NotificationBackend:
    options = config.options
    recipients = _require(config, "recipients")
    if isinstance(recipients, str):
        recipients = [recipients]
    if not isinstance(recipients, list):
        raise ConfigError("email backend 'recipients' must be a list of addresses")

    password = options.get("password")
    password_env = options.get("password_env")
    if password_env:
        password = os.environ.get(str(password_env))
        if password is None:
            raise ConfigError(f"email backend password variable {password_env} is not set")

    return EmailBackend(
        host=str(_require(config, "host")),
        sender=str(_require(config, "sender")),
        recipients=[str(item) for item in recipients],
        port=int(options.get("port", 587)),
        username=str(options["username"]) if options.get("username") else None,
        password=str(password) if password is not None else None,
        starttls=bool(options.get("starttls", True)),
        use_ssl=bool(options.get("use_ssl", False)),
        timeout=float(options.get("timeout_seconds", 30.0)),
        vendor=config.vendor or "smtp",
    )


def _build_webhook(config: BackendConfig) -> NotificationBackend:
    headers = config.options.get("headers", {})
    if not isinstance(headers, Mapping):
        raise ConfigError("webhook backend 'headers' must be a table")
    return WebhookBackend(
        url=str(_require(config, "url")),
        vendor=config.vendor or "generic",
        timeout=float(config.options.get("timeout_seconds", 10.0)),
        headers={str(key): str(value) for key, value in headers.items()},
    )


BACKEND_BUILDERS: Dict[str, Callable[[BackendConfig], NotificationBackend]] = {
    "console": _build_console,
    "email": _build_email,
    "webhook": _build_webhook,
}


def build_backends(configs: Iterable[BackendConfig]) -> List[NotificationBackend]:
    """Instantiate backends in configuration order."""

    backends: List[NotificationBackend] = []
    for config in configs:
        builder = BACKEND_BUILDERS.get(config.type)
        if builder is None:
            raise ConfigError(f"Unknown backend type: {config.type}")
        try:
            backends.append(builder(config))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid options for {config.type} backend: {exc}") from exc
    return backends
