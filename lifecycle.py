"""Clock-in / clock-out lifecycle of time entries.

The state of a (user, date) pair is never stored. It is read from the most
recently created entry for that date through :func:`entry_state`, and every
operation that reads that entry and then writes runs inside
:func:`user_transaction` so two requests for the same user cannot both see
``NONE`` and open the day twice.
"""
import logging
import threading
from contextlib import contextmanager

import entry_store
from errors import AlreadyClockedIn, NotClockedIn, AlreadyClockedOut, EntryNotFound
from models import db
from timeutils import (
    resolve_moment, entry_minutes, format_duration, parse_date, parse_hhmm, validate_timezone, wall_clock,
)

NONE = 'NONE'
OPEN = 'OPEN'

LOCK_STRIPES = 64

# Users share a lock when their ids fall on the same stripe
_user_locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

# Clock-out argument meaning "leave the entry's comment as it is"
_KEEP = object()


def _lock_for(user_id):
    return _user_locks[hash(user_id) % LOCK_STRIPES]


@contextmanager
def user_transaction(user_id):
    with _lock_for(user_id):
        db.session.expire_all()
        try:
            entry_store.lock_user(user_id)
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


def entry_state(entry):
    if entry is not None and entry.check_in and not entry.check_out:
        return OPEN
    return NONE


def current_state(user_id, date):
    return entry_state(entry_store.get_latest_entry(user_id, date))


def last_comment(user_id):
    entry = entry_store.get_last_comment(user_id)
    if entry is None:
        return None, None
    return entry.comment, entry.date


def _clean_comment(comment):
    return comment if comment else None


def _clock_in(user_id, date, time, timezone):
    latest = entry_store.get_latest_entry(user_id, date)
    if entry_state(latest) == OPEN:
        raise AlreadyClockedIn()
    entry = entry_store.insert_entry(user_id, date, time, timezone)
    logging.info(f"User {user_id} clocked in on {date} at {time}")
    return entry


def _clock_out(user_id, date, time, timezone, comment=_KEEP):
    latest = entry_store.get_latest_entry(user_id, date)
    if latest is None or not latest.check_in:
        raise NotClockedIn()
    if latest.check_out:
        raise AlreadyClockedOut()
    fields = {'check_out': time, 'timezone': latest.timezone or timezone}
    if comment is not _KEEP:
        fields['comment'] = _clean_comment(comment)
    entry_store.update_entry_fields(latest, **fields)
    logging.info(f"User {user_id} clocked out on {date} at {time}")
    return latest


def clock_in(user_id, date=None, time=None, timezone=None, now=None):
    date, time, timezone = resolve_moment(date, time, timezone, now)
    with user_transaction(user_id):
        entry = _clock_in(user_id, date, time, timezone)
    return {'id': entry.id, 'date': date, 'time': time}


def clock_out(user_id, date=None, time=None, timezone=None, comment=None, now=None):
    date, time, timezone = resolve_moment(date, time, timezone, now)
    with user_transaction(user_id):
        entry = _clock_out(user_id, date, time, timezone, comment)
        minutes = entry_minutes(entry)
        result = {
            'id': entry.id,
            'date': date,
            'time': time,
            'checkIn': entry.check_in,
            'checkOut': entry.check_out,
            'minutes': minutes,
            'duration': format_duration(minutes),
        }
    return result


def toggle(user_id, date=None, time=None, timezone=None, now=None):
    """Clocks in when the day is not open, otherwise clocks out leaving the comment as it is."""
    date, time, timezone = resolve_moment(date, time, timezone, now)
    with user_transaction(user_id):
        if current_state(user_id, date) == NONE:
            comment, comment_date = last_comment(user_id)
            entry = _clock_in(user_id, date, time, timezone)
            result = {
                'action': 'check-in',
                'time': time,
                'entryId': entry.id,
                'lastComment': comment,
                'lastCommentDate': comment_date,
            }
        else:
            entry = _clock_out(user_id, date, time, timezone)
            minutes = entry_minutes(entry)
            result = {
                'action': 'check-out',
                'time': time,
                'checkIn': entry.check_in,
                'checkOut': entry.check_out,
                'minutes': minutes,
                'duration': format_duration(minutes),
                'entryId': entry.id,
            }
    return result


def status(user_id, date=None, now=None):
    if date:
        parse_date(date)
    else:
        date = wall_clock(now=now)[0]
    entry = entry_store.get_latest_entry(user_id, date)
    comment, comment_date = last_comment(user_id)
    return {
        'date': date,
        'state': entry_state(entry),
        'hasEntry': entry is not None,
        'checkedIn': entry_state(entry) == OPEN,
        'checkedOut': bool(entry and entry.check_out),
        'entry': entry.to_dict() if entry else None,
        'lastComment': comment,
        'lastCommentDate': comment_date,
    }


def _owned_entry(user_id, entry_id):
    entry = entry_store.get_entry(user_id, entry_id)
    if entry is None:
        raise EntryNotFound()
    return entry


def update_comment(user_id, entry_id, comment):
    with user_transaction(user_id):
        entry = _owned_entry(user_id, entry_id)
        entry_store.update_entry_fields(entry, comment=_clean_comment(comment))
        result = entry.to_dict()
    return result


def update_entry(user_id, entry_id, date=None, check_in=None, check_out=None, comment=None, timezone=None):
    if date:
        parse_date(date)
    if check_in:
        parse_hhmm(check_in, 'check_in')
    if check_out:
        parse_hhmm(check_out, 'check_out')
    timezone = validate_timezone(timezone)
    with user_transaction(user_id):
        entry = _owned_entry(user_id, entry_id)
        entry_store.update_entry_fields(
            entry,
            date=date or entry.date,
            check_in=check_in or None,
            check_out=check_out or None,
            comment=_clean_comment(comment),
            timezone=timezone or entry.timezone,
        )
        result = entry.to_dict()
    logging.info(f"User {user_id} edited entry {entry_id}")
    return result


def delete_entry(user_id, entry_id):
    with user_transaction(user_id):
        entry_store.delete_entry(_owned_entry(user_id, entry_id))
    logging.info(f"User {user_id} deleted entry {entry_id}")


def list_entries(user_id, page=1, per_page=50):
    entries, total = entry_store.list_entries(user_id, offset=(page - 1) * per_page, limit=per_page)
    return {
        'entries': [e.to_dict() for e in entries],
        'total': total,
        'page': page,
        'per_page': per_page,
    }
