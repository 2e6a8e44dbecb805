from datetime import date
from typing import List, Optional, Tuple

import pytest

from birthday_notifier.contact import Contact
from birthday_notifier.notify import NotificationBackend, NotificationError


class RecordingBackend(NotificationBackend):
    """Records every call into a shared journal; optionally always fails."""

    kind = "test"

    def __init__(self, vendor: str, journal: List[Tuple[str, str]], fail_with: Optional[Exception] = None):
        super().__init__(vendor)
        self.journal = journal
        self.fail_with = fail_with

    def send_notification(self, contact: Contact, today: Optional[date] = None) -> None:
        self.journal.append((self.vendor, contact.full_name))
        if self.fail_with is not None:
            raise self.fail_with


@pytest.fixture
def journal() -> List[Tuple[str, str]]:
    return []


@pytest.fixture
def three_backends(journal):
    return [
        RecordingBackend("first", journal),
        RecordingBackend("second", journal, fail_with=NotificationError("rate limited")),
        RecordingBackend("third", journal),
    ]


@pytest.fixture
def leap_contact() -> Contact:
    return Contact("Leap", "Baby", 2, 29, 1996)
