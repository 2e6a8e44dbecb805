import logging
from datetime import date

from birthday_notifier.contact import Contact
from birthday_notifier.dispatch import Dispatcher
from birthday_notifier.scan import ScanEngine
from conftest import RecordingBackend


def _engine(contacts, journal, handle_leap_years=True, backends=None):
    backends = backends if backends is not None else [RecordingBackend("only", journal)]
    return ScanEngine(contacts, Dispatcher(backends), handle_leap_years=handle_leap_years)


def test_leap_day_contact_matches_on_leap_day(leap_contact, journal):
    report = _engine([leap_contact], journal).scan(date(2024, 2, 29))
    assert report.matches == [leap_contact]
    assert report.leap_year_notices == []
    assert journal == [("only", "Leap Baby")]


def test_leap_day_contact_not_matched_on_february_28(leap_contact, journal):
    report = _engine([leap_contact], journal).scan(date(2023, 2, 28))
    assert report.matches == []
    assert journal == []


def test_march_first_notice_is_log_only(leap_contact, journal, caplog):
    caplog.set_level(logging.INFO, logger="birthday_notifier.scan")
    report = _engine([leap_contact], journal).scan(date(2023, 3, 1))

    assert report.matches == []
    assert report.leap_year_notices == [leap_contact]
    assert journal == []
    notice = [r for r in caplog.records if r.getMessage() == "Birthday to wish on a leap year !"]
    assert notice[0].fields == {"age": 27, "firstname": "Leap", "lastname": "Baby"}


def test_march_first_notice_fires_for_every_leap_year_born_contact(journal):
    # Born in a leap year but not on February 29: still noticed on March 1.
    summer = Contact("Summer", "Child", 7, 14, 2000)
    common = Contact("Common", "Year", 7, 14, 1999)
    report = _engine([summer, common], journal).scan(date(2025, 3, 1))
    assert report.leap_year_notices == [summer]


def test_birthday_and_notice_can_both_fire_for_one_contact(journal):
    march = Contact("March", "Hare", 3, 1, 1996)
    report = _engine([march], journal).scan(date(2024, 3, 1))
    assert report.matches == [march]
    assert report.leap_year_notices == [march]
    assert journal == [("only", "March Hare")]


def test_leap_year_notice_disabled(leap_contact, journal):
    report = _engine([leap_contact], journal, handle_leap_years=False).scan(date(2023, 3, 1))
    assert report.leap_year_notices == []


def test_scan_is_deterministic(three_backends, journal):
    contacts = [
        Contact("Ada", "Lovelace", 12, 10, 1815),
        Contact("Not", "Today", 1, 1, 1990),
        Contact("Also", "Today", 12, 10),
    ]
    engine = _engine(contacts, journal, backends=three_backends)

    first = engine.scan(date(2024, 12, 10))
    first_calls = list(journal)
    journal.clear()
    second = engine.scan(date(2024, 12, 10))

    assert first.matches == second.matches == [contacts[0], contacts[2]]
    assert journal == first_calls
    assert first_calls == [
        ("first", "Ada Lovelace"),
        ("second", "Ada Lovelace"),
        ("third", "Ada Lovelace"),
        ("first", "Also Today"),
        ("second", "Also Today"),
        ("third", "Also Today"),
    ]
    assert [o.status for o in first.deliveries] == ["success", "failure", "success"] * 2
    assert len(first.failures) == 2


def test_match_is_logged_with_age(caplog, journal):
    caplog.set_level(logging.INFO, logger="birthday_notifier.scan")
    _engine([Contact("Ada", "Lovelace", 12, 10, 1815)], journal).scan(date(2024, 12, 10))
    match = [r for r in caplog.records if r.getMessage() == "Birthday to wish !"]
    assert match[0].fields == {"age": 209, "firstname": "Ada", "lastname": "Lovelace"}
