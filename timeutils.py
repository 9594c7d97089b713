import calendar
import logging
from datetime import datetime, date
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from errors import ValidationError

MINUTES_PER_DAY = 24 * 60

MONTH_NAMES = list(calendar.month_name)[1:]
WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


def parse_date(value, field='date'):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be YYYY-MM-DD')


def parse_hhmm(value, field='time'):
    """Returns minutes since midnight for an ``HH:MM`` string."""
    try:
        parsed = datetime.strptime(value, '%H:%M')
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be HH:MM')
    return parsed.hour * 60 + parsed.minute


def validate_timezone(value):
    if not value:
        return None
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError(f'Unknown timezone: {value}')
    return value


def minutes_between(check_in, check_out):
    """Worked minutes between two ``HH:MM`` times of the same shift.

    A check-out earlier on the clock face than the check-in is a shift that
    crossed midnight, so one day is added.
    """
    minutes = parse_hhmm(check_out, 'check_out') - parse_hhmm(check_in, 'check_in')
    if minutes < 0:
        minutes += MINUTES_PER_DAY
    return minutes


def entry_minutes(entry):
    if entry is None or not entry.check_in or not entry.check_out:
        return 0
    return minutes_between(entry.check_in, entry.check_out)


def format_duration(minutes):
    hours, mins = divmod(int(minutes), 60)
    return f'{hours}h {mins}m'


def wall_clock(timezone=None, now=None):
    """Resolves (date, time) strings for 'now', in ``timezone`` when given."""
    if now is None:
        now = datetime.now(ZoneInfo(timezone)) if timezone else datetime.now()
    elif timezone and now.tzinfo is not None:
        now = now.astimezone(ZoneInfo(timezone))
    return now.strftime('%Y-%m-%d'), now.strftime('%H:%M')


def resolve_moment(date_str=None, time_str=None, timezone=None, now=None):
    """Fills in a missing date/time from the wall clock and validates all three.

    Older clients send neither date nor time; without a timezone the server's
    local clock decides which day the entry lands on.
    """
    timezone = validate_timezone(timezone)
    if not date_str or not time_str:
        if not timezone:
            logging.warning('No client date/time or timezone supplied, falling back to server local time')
        fallback_date, fallback_time = wall_clock(timezone, now)
        date_str = date_str or fallback_date
        time_str = time_str or fallback_time
    parse_date(date_str)
    parse_hhmm(time_str)
    return date_str, time_str, timezone


def days_in_month(year, month):
    return calendar.monthrange(year, month)[1]


def month_bounds(year, month):
    first = date(year, month, 1)
    last = date(year, month, days_in_month(year, month))
    return first.isoformat(), last.isoformat()


def previous_month(now):
    if now.month == 1:
        return now.year - 1, 12
    return now.year, now.month - 1
