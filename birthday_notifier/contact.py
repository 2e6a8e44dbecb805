"""Contact entity and the birthday predicates evaluated during a scan."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

# Any leap year works here; it only lets February 29 validate when the
# real birth year is unknown.
_PLACEHOLDER_YEAR = 2000


def is_leap_year(year: int) -> bool:
    """Return ``True`` if ``year`` is a leap year in the Gregorian calendar."""

    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


@dataclass(frozen=True)
class Contact:
    """A person whose birthday should be wished."""

    firstname: str
    lastname: str
    birth_month: int
    birth_day: int
    birth_year: Optional[int] = None

    def __post_init__(self) -> None:
        try:
            year = self.birth_year if self.birth_year is not None else _PLACEHOLDER_YEAR
            date(year, self.birth_month, self.birth_day)
        except ValueError as exc:
            raise ValueError(f"Invalid birthdate for {self.full_name}: {exc}") from exc

    @classmethod
    def from_date(cls, firstname: str, lastname: str, birthdate: date) -> "Contact":
        return cls(
            firstname=firstname,
            lastname=lastname,
            birth_month=birthdate.month,
            birth_day=birthdate.day,
            birth_year=birthdate.year,
        )

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}".strip()

    @property
    def birthdate(self) -> Optional[date]:
        if self.birth_year is None:
            return None
        return date(self.birth_year, self.birth_month, self.birth_day)

    def is_birthday_today(self, today: date) -> bool:
        """Compare month and day only.

        A contact born on February 29 only matches on a February 29; there is
        no March 1 fallback here.
        """

        return (self.birth_month, self.birth_day) == (today.month, today.day)

    def is_born_on_leap_year(self) -> bool:
        if self.birth_year is None:
            return False
        return is_leap_year(self.birth_year)

    def get_age(self, today: date) -> Optional[int]:
        """Return completed years at ``today``, or ``None`` if the birth year is unknown."""

        if self.birth_year is None:
            return None
        age = today.year - self.birth_year
        if (today.month, today.day) < (self.birth_month, self.birth_day):
            age -= 1
        return age
