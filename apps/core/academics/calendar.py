"""
Academic calendar helpers.

Every caller that needs "the current term" goes through ``current_term`` so
that the month boundaries live in one place:

- June to October: 1st Sem
- November to March: 2nd Sem
- April to May: Summer

A school year starts in June, so ``2025-2026`` covers June 2025 through
May 2026.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .models import SEMESTER_FIRST, SEMESTER_SECOND, SEMESTER_SUMMER, YEAR_LEVELS


FIRST_SEM_MONTHS = range(6, 11)
SUMMER_MONTHS = range(4, 6)
SCHOOL_YEAR_START_MONTH = 6


@dataclass(frozen=True)
class Term:
    year: int
    semester: str
    school_year: str


def school_year_label(start_year: int) -> str:
    return f"{start_year}-{start_year + 1}"


def current_term(on_date: date) -> Term:
    month = on_date.month
    if month in FIRST_SEM_MONTHS:
        semester = SEMESTER_FIRST
    elif month in SUMMER_MONTHS:
        semester = SEMESTER_SUMMER
    else:
        semester = SEMESTER_SECOND

    start_year = on_date.year if month >= SCHOOL_YEAR_START_MONTH else on_date.year - 1
    return Term(year=start_year, semester=semester, school_year=school_year_label(start_year))


def closing_school_year(on_date: date) -> str:
    """School year that ends in the calendar year of ``on_date``."""
    return school_year_label(on_date.year - 1)


def next_year_level(year_level: str) -> str | None:
    """Return the following level, or None at the last level or for unknown input."""
    if year_level not in YEAR_LEVELS:
        return None
    index = YEAR_LEVELS.index(year_level)
    if index == len(YEAR_LEVELS) - 1:
        return None
    return YEAR_LEVELS[index + 1]


def is_final_year_level(year_level: str) -> bool:
    return year_level == YEAR_LEVELS[-1]
