"""One pass over all contacts for a single scheduler tick."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List

from .contact import Contact
from .dispatch import DeliveryOutcome, Dispatcher
from .utils import fields

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    """What a scan matched and what it delivered."""

    today: date
    matches: List[Contact] = field(default_factory=list)
    leap_year_notices: List[Contact] = field(default_factory=list)
    deliveries: List[DeliveryOutcome] = field(default_factory=list)

    @property
    def failures(self) -> List[DeliveryOutcome]:
        return [outcome for outcome in self.deliveries if not outcome.ok]


class ScanEngine:
    """Match every contact against ``today`` and dispatch the birthdays found.

    Contacts are processed in list order and one at a time. Literal birthday
    matches go through the dispatcher. When ``handle_leap_years`` is enabled,
    every contact born in a leap year additionally gets a log-only notice on
    March 1st; that notice never reaches a backend.
    """

    def __init__(self, contacts: Iterable[Contact], dispatcher: Dispatcher, handle_leap_years: bool = False) -> None:
        self.contacts = tuple(contacts)
        self.dispatcher = dispatcher
        self.handle_leap_years = handle_leap_years

    def scan(self, today: date) -> ScanReport:
        report = ScanReport(today=today)
        logger.debug("Scanning contacts", extra=fields(contacts=len(self.contacts), date=today.isoformat()))

        for contact in self.contacts:
            if contact.is_birthday_today(today):
                logger.info("Birthday to wish !", extra=fields(**_contact_fields(contact, today)))
                report.matches.append(contact)
                report.deliveries.extend(self.dispatcher.dispatch(contact, today))

            if self.handle_leap_years and contact.is_born_on_leap_year() and (today.month, today.day) == (3, 1):
                logger.info("Birthday to wish on a leap year !", extra=fields(**_contact_fields(contact, today)))
                report.leap_year_notices.append(contact)

        return report


def _contact_fields(contact: Contact, today: date) -> dict:
    return {"age": contact.get_age(today), "firstname": contact.firstname, "lastname": contact.lastname}
