"""Calendar arithmetic for subscription recurrence.

A subscription's report window ends at its ``next_report_timestamp`` and
starts one calendar unit earlier. Once a report is requested the timestamp
moves to the end of the unit that follows it.

Arithmetic happens on wall-clock time in a configurable zone so month lengths
and daylight-saving transitions are honoured; results are returned in UTC.

Usage
-----
>>> import datetime as dt
>>> due = dt.datetime(2024, 3, 10, tzinfo=dt.UTC)
>>> window_for(due, Recurrency.DAILY).start.isoformat()
'2024-03-09T00:00:00+00:00'
>>> advance_timestamp(due, Recurrency.DAILY).isoformat()
'2024-03-10T23:59:59.999000+00:00'

"""

from __future__ import annotations

import calendar
import dataclasses as dc
import datetime as dt
import enum
import typing as typ

from lookout.common.time import ensure_utc
from lookout.dispatch.errors import UnknownRecurrencyError

if typ.TYPE_CHECKING:
    from lookout.subscriptions.models import Subscription

# Pushes a timestamp sitting exactly on a unit boundary into the next unit.
GUARD_OFFSET = dt.timedelta(seconds=2)

# Weeks run Sunday to Saturday.
WEEK_START = calendar.SUNDAY

_END_OF_DAY = dt.time(23, 59, 59, 999000)
_DAYS_PER_WEEK = 7
_MONTHS_PER_YEAR = 12


class TimeUnit(enum.StrEnum):
    """Calendar units a recurrency maps onto."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class Recurrency(enum.StrEnum):
    """Supported subscription cadences."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def unit(self) -> TimeUnit:
        """Return the calendar unit for this cadence."""
        return _UNITS[self]

    @classmethod
    def parse(cls, value: object) -> Recurrency:
        """Return the member for ``value`` or raise ``UnknownRecurrencyError``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise UnknownRecurrencyError(value)


_UNITS: dict[Recurrency, TimeUnit] = {
    Recurrency.DAILY: TimeUnit.DAY,
    Recurrency.WEEKLY: TimeUnit.WEEK,
    Recurrency.MONTHLY: TimeUnit.MONTH,
}


@dc.dataclass(frozen=True, slots=True)
class ReportWindow:
    """Time window a report request covers.

    Attributes
    ----------
    start
        Start of the window, one calendar unit before ``end``.
    end
        End of the window; the subscription's due timestamp.

    """

    start: dt.datetime
    end: dt.datetime


def _shift_months(value: dt.date, months: int) -> dt.date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = value.year * _MONTHS_PER_YEAR + (value.month - 1) + months
    year, month_zero = divmod(month_index, _MONTHS_PER_YEAR)
    month = month_zero + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return dt.date(year, month, day)


def subtract_unit(
    value: dt.datetime,
    unit: TimeUnit,
    tz: dt.tzinfo = dt.UTC,
) -> dt.datetime:
    """Return ``value`` moved back one calendar ``unit``, keeping wall time.

    >>> subtract_unit(dt.datetime(2024, 3, 31, tzinfo=dt.UTC), TimeUnit.MONTH)
    datetime.datetime(2024, 2, 29, 0, 0, tzinfo=datetime.timezone.utc)

    """
    local = ensure_utc(value).astimezone(tz)
    match unit:
        case TimeUnit.DAY:
            shifted = local.date() - dt.timedelta(days=1)
        case TimeUnit.WEEK:
            shifted = local.date() - dt.timedelta(days=_DAYS_PER_WEEK)
        case TimeUnit.MONTH:
            shifted = _shift_months(local.date(), -1)
    return dt.datetime.combine(shifted, local.timetz()).astimezone(dt.UTC)


def end_of_unit(
    value: dt.datetime,
    unit: TimeUnit,
    tz: dt.tzinfo = dt.UTC,
) -> dt.datetime:
    """Return the last millisecond of the ``unit`` containing ``value``."""
    local_date = ensure_utc(value).astimezone(tz).date()
    match unit:
        case TimeUnit.DAY:
            last_day = local_date
        case TimeUnit.WEEK:
            week_end = (WEEK_START - 1) % _DAYS_PER_WEEK
            offset = (week_end - local_date.weekday()) % _DAYS_PER_WEEK
            last_day = local_date + dt.timedelta(days=offset)
        case TimeUnit.MONTH:
            days_in_month = calendar.monthrange(local_date.year, local_date.month)[1]
            last_day = local_date.replace(day=days_in_month)
    return dt.datetime.combine(last_day, _END_OF_DAY, tzinfo=tz).astimezone(dt.UTC)


def window_for(
    due: dt.datetime,
    recurrency: Recurrency,
    tz: dt.tzinfo = dt.UTC,
) -> ReportWindow:
    """Return the report window ending at ``due``."""
    end = ensure_utc(due)
    return ReportWindow(start=subtract_unit(end, recurrency.unit, tz), end=end)


def advance_timestamp(
    due: dt.datetime,
    recurrency: Recurrency,
    tz: dt.tzinfo = dt.UTC,
) -> dt.datetime:
    """Return the next due timestamp after ``due``.

    The guard offset is applied before snapping so a timestamp already at the
    end of its unit lands at the end of the following unit.
    """
    return end_of_unit(ensure_utc(due) + GUARD_OFFSET, recurrency.unit, tz)


class RecurrenceCalculator:
    """Compute report windows and next due timestamps for subscriptions."""

    def __init__(self, tz: dt.tzinfo = dt.UTC) -> None:
        """Measure calendar units in ``tz``."""
        self._tz = tz

    def window(self, subscription: Subscription) -> ReportWindow:
        """Return the window the subscription's next report covers."""
        recurrency = Recurrency.parse(subscription.recurrency)
        return window_for(subscription.next_report_timestamp, recurrency, self._tz)

    def advance(self, subscription: Subscription) -> dt.datetime:
        """Return the subscription's next due timestamp."""
        recurrency = Recurrency.parse(subscription.recurrency)
        return advance_timestamp(
            subscription.next_report_timestamp, recurrency, self._tz
        )
