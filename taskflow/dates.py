from datetime import date, datetime, timedelta, UTC

import pytz

# Sunday, matching Python's weekday() numbering (Monday == 0)
WEEK_STARTS_ON = 6


def to_date(value):
    """Normalize a date-ish value to ``datetime.date``.

    Accepts ``date``, ``datetime``, ``YYYY-MM-DD`` strings and full ISO-8601
    timestamps (a trailing ``Z`` is read as UTC). Raises ``ValueError`` for
    anything else so callers can turn it into a field error.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError('empty date')
        if len(s) == 10:
            return datetime.strptime(s, '%Y-%m-%d').date()
        if s.endswith('Z'):
            s = s[:-1] + '+00:00'
        return datetime.fromisoformat(s).date()
    raise ValueError(f'unsupported date value: {value!r}')


def to_datetime(value):
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str):
        s = value.strip()
        if s.endswith('Z'):
            s = s[:-1] + '+00:00'
        dt = datetime.fromisoformat(s)
        return dt if dt.tzinfo else dt.replace(tzinfo=UTC)
    raise ValueError(f'unsupported timestamp value: {value!r}')


def utcnow():
    return datetime.now(UTC)


def today(tz_name='UTC'):
    return datetime.now(pytz.timezone(tz_name)).date()


def add_days(d, n):
    return to_date(d) + timedelta(days=n)


def days_between(a, b):
    """Whole days from ``a`` to ``b`` (negative when ``b`` is earlier)."""
    return (to_date(b) - to_date(a)).days


def start_of_week(d, week_starts_on=WEEK_STARTS_ON):
    d = to_date(d)
    return d - timedelta(days=(d.weekday() - week_starts_on) % 7)


def end_of_week(d, week_starts_on=WEEK_STARTS_ON):
    return start_of_week(d, week_starts_on) + timedelta(days=6)


def each_day(start, end):
    start, end = to_date(start), to_date(end)
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def iso(value):
    if value is None:
        return None
    return value.isoformat()
