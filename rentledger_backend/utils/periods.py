"""Helpers for ``YYYY-MM`` billing periods."""
import re
from datetime import date

from dateutil.relativedelta import relativedelta

from rentledger_backend.errors import ValidationError

PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_period(value, field="period"):
    """Validate a period string and return it normalized."""
    if value is None or str(value).strip() == "":
        raise ValidationError(f"{field} is required", field=field)
    match = PERIOD_RE.match(str(value).strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError(f"{field} must be in YYYY-MM format", field=field)
    return f"{match.group(1)}-{match.group(2)}"


def first_day(period):
    year, month = map(int, period.split("-"))
    return date(year, month, 1)


def period_of(day):
    return day.strftime("%Y-%m")


def current_period(today=None):
    return period_of(today or date.today())


def iter_periods(start, end):
    """Yield every period from ``start`` to ``end`` inclusive."""
    cursor = first_day(start)
    stop = first_day(end)
    if cursor > stop:
        raise ValidationError("range start must not be after range end", field="through")
    while cursor <= stop:
        yield period_of(cursor)
        cursor += relativedelta(months=1)
