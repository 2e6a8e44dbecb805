import re

import pytest

from birthday_notifier.contacts import ContactsError, load_contacts, parse_birthdate


def test_load_contacts_preserves_order(tmp_path):
    path = tmp_path / "contacts.csv"
    path.write_text(
        "firstname,lastname,birthdate\n"
        "Ada,Lovelace,1815-12-10\n"
        "\n"
        "Grace,Hopper,--12-09\n",
        encoding="utf-8",
    )
    contacts = load_contacts(path)
    assert [c.full_name for c in contacts] == ["Ada Lovelace", "Grace Hopper"]
    assert contacts[0].birth_year == 1815
    assert contacts[1].birth_year is None
    assert (contacts[1].birth_month, contacts[1].birth_day) == (12, 9)


def test_parse_birthdate_formats():
    assert parse_birthdate("1996-02-29") == (1996, 2, 29)
    assert parse_birthdate(" --02-29 ") == (None, 2, 29)
    with pytest.raises(ValueError):
        parse_birthdate("29/02/1996")


def test_invalid_row_reports_line(tmp_path):
    path = tmp_path / "contacts.csv"
    path.write_text("firstname,lastname,birthdate\nAda,Lovelace,1815-02-30\n", encoding="utf-8")
    with pytest.raises(ContactsError, match=":2:"):
        load_contacts(path)


def test_missing_column(tmp_path):
    path = tmp_path / "contacts.csv"
    path.write_text("firstname,birthdate\nAda,1815-12-10\n", encoding="utf-8")
    with pytest.raises(ContactsError, match="lastname"):
        load_contacts(path)


def test_missing_file(tmp_path):
    with pytest.raises(ContactsError, match="not found"):
        load_contacts(tmp_path / "nope.csv")


def test_undecodable_file_is_a_contacts_error(tmp_path):
    path = tmp_path / "contacts.csv"
    path.write_bytes(b"firstname,lastname,birthdate\n\xff\xfe,X,1990-01-01\n")
    with pytest.raises(ContactsError, match="contacts.csv"):
        load_contacts(path)


def test_directory_instead_of_file_is_a_contacts_error(tmp_path):
    with pytest.raises(ContactsError, match=re.escape(str(tmp_path))):
        load_contacts(tmp_path)


def test_year_zero_is_rejected(tmp_path):
    path = tmp_path / "contacts.csv"
    path.write_text("firstname,lastname,birthdate\nZero,Year,0000-05-05\n", encoding="utf-8")
    with pytest.raises(ContactsError, match=":2:"):
        load_contacts(path)
