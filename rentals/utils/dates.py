from datetime import datetime, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def add_months(anchor: datetime, months: int) -> datetime:
    # relativedelta clamps the day to the last valid day of the target month
    return anchor + relativedelta(months=months)


def one_year_after(start: datetime) -> datetime:
    # Feb 29 maps to Feb 28 in non-leap years
    return start + relativedelta(years=1)


def next_payment_date(start_date: datetime, now: Optional[datetime] = None) -> datetime:
    """First monthly due date strictly after ``now``.

    Due dates are counted from the lease start, ``start_date + n months``,
    never from the previous due date, so a lease starting on the 31st is due
    on Jan 31, Feb 29 (or 28), Mar 31, Apr 30, ... without drifting to the
    shortest month's day. A start date still in the future is returned as-is.
    """
    now = now or utcnow()
    if start_date > now:
        return start_date

    months = 1
    candidate = add_months(start_date, months)
    while candidate <= now:
        months += 1
        candidate = add_months(start_date, months)
    return candidate
