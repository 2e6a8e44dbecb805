"""Fan a matched contact out to every registered backend."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from .contact import Contact
from .notify import NotificationBackend, NotificationError
from .utils import fields

logger = logging.getLogger(__name__)


@dataclass
class DeliveryOutcome:
    """Result of one delivery attempt through one backend."""

    contact: Contact
    kind: str
    vendor: str
    status: str
    message: str
    err_category: Optional[str] = None
    err_summary: Optional[str] = None
    duration_ms: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class Dispatcher:
    """Deliver through each backend in registration order, isolating failures."""

    def __init__(self, backends: Sequence[NotificationBackend]) -> None:
        self.backends = tuple(backends)

    def dispatch(self, contact: Contact, today: Optional[date] = None) -> List[DeliveryOutcome]:
        """Attempt one delivery per backend. Never raises; a failing backend does not stop the others."""

        return [self._send(backend, contact, today) for backend in self.backends]

    def _send(self, backend: NotificationBackend, contact: Contact, today: Optional[date]) -> DeliveryOutcome:
        backend_fields = {"provider_type": backend.kind, "provider_vendor": backend.vendor}
        logger.info("Sending the notification", extra=fields(**backend_fields))

        start = time.perf_counter()
        try:
            backend.send_notification(contact, today)
        except NotificationError as exc:
            logger.error(
                "Error while sending the notification: %s", exc, extra=fields(**backend_fields, error=str(exc))
            )
            return DeliveryOutcome(
                contact=contact,
                kind=backend.kind,
                vendor=backend.vendor,
                status="failure",
                message="Delivery failed",
                err_category="delivery",
                err_summary=str(exc),
                duration_ms=_elapsed_ms(start),
            )
        except Exception as exc:
            logger.exception(
                "Unexpected error while sending the notification", extra=fields(**backend_fields, error=str(exc))
            )
            return DeliveryOutcome(
                contact=contact,
                kind=backend.kind,
                vendor=backend.vendor,
                status="failure",
                message="Unexpected backend error",
                err_category="unknown",
                err_summary=f"{type(exc).__name__}: {exc}",
                duration_ms=_elapsed_ms(start),
            )

        logger.info("Successfully sent the notification", extra=fields(**backend_fields))
        return DeliveryOutcome(
            contact=contact,
            kind=backend.kind,
            vendor=backend.vendor,
            status="success",
            message="Notification sent",
            duration_ms=_elapsed_ms(start),
        )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
