from sqlalchemy import func

from models import db, Entry, User


def lock_user(user_id):
    """Takes the row lock on the user for the rest of the transaction (no-op on SQLite)."""
    return db.session.query(User).filter_by(id=user_id).with_for_update().one_or_none()


def get_latest_entry(user_id, date):
    return (Entry.query
            .filter_by(user_id=user_id, date=date)
            .order_by(Entry.id.desc())
            .first())


def get_entry(user_id, entry_id):
    return Entry.query.filter_by(id=entry_id, user_id=user_id).first()


def insert_entry(user_id, date, check_in, timezone=None, comment=None):
    entry = Entry(user_id=user_id, date=date, check_in=check_in, timezone=timezone, comment=comment)
    db.session.add(entry)
    db.session.flush()
    return entry


def update_entry_fields(entry, **fields):
    for name, value in fields.items():
        setattr(entry, name, value)
    db.session.flush()
    return entry


def delete_entry(entry):
    db.session.delete(entry)
    db.session.flush()


def get_last_comment(user_id):
    return (Entry.query
            .filter(Entry.user_id == user_id, Entry.comment.isnot(None), Entry.comment != '')
            .order_by(Entry.date.desc(), Entry.id.desc())
            .first())


def list_entries(user_id, offset=0, limit=None):
    query = Entry.query.filter_by(user_id=user_id).order_by(Entry.date.desc(), Entry.id.desc())
    total = query.count()
    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def entries_in_range(user_id, start_date, end_date):
    return (Entry.query
            .filter(Entry.user_id == user_id, Entry.date >= start_date, Entry.date <= end_date)
            .order_by(Entry.date.asc(), Entry.id.asc())
            .all())


def date_bounds(user_id):
    return (db.session.query(func.min(Entry.date), func.max(Entry.date))
            .filter(Entry.user_id == user_id)
            .one())


def users_with_entries_between(start_date, end_date):
    return (User.query
            .join(Entry, Entry.user_id == User.id)
            .filter(Entry.date >= start_date, Entry.date <= end_date)
            .distinct()
            .order_by(User.id)
            .all())
