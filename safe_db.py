# safe_db.py
import json
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db, User, Setting, Subscription, VapidKey, TriggerMark

DEFAULT_REMINDER_TIME = '20:00'

def get_user_by_id(user_id):
    try:
        return db.session.get(User, int(user_id))
    except (SQLAlchemyError, ValueError) as e:
        logging.error(f"Error loading user by id ({user_id}): {e}")
        return None

def get_user_by_username(username):
    try:
        return User.query.filter_by(username=username).first()
    except SQLAlchemyError as e:
        logging.error(f"Error loading user by username ({username}): {e}")
        return None

def create_user(username, password_hash, email=None):
    try:
        user = User(username=username, password_hash=password_hash, email=email)
        db.session.add(user)
        db.session.commit()
        return user
    except SQLAlchemyError as e:
        logging.error(f"Error creating user ({username}): {e}")
        db.session.rollback()
        return None

def update_user_profile(user, email=None, password_hash=None, avatar_url=None):
    user_id = user.id
    try:
        if email:
            user.email = email
        if password_hash:
            user.password_hash = password_hash
        if avatar_url:
            user.avatar_url = avatar_url
        db.session.commit()
        return True
    except SQLAlchemyError as e:
        logging.error(f"Error updating profile of user ({user_id}): {e}")
        db.session.rollback()
        return False

def save_push_subscription(user, endpoint, keys):
    user_id = user.id
    try:
        sub = Subscription.query.filter_by(endpoint=endpoint).first()
        if sub is None:
            db.session.add(Subscription(endpoint=endpoint, user_id=user_id, keys=json.dumps(keys)))
        else:
            sub.user_id = user_id
            sub.keys = json.dumps(keys)
        db.session.commit()
        return True
    except SQLAlchemyError as e:
        logging.error(f"Error saving push subscription ({user_id}): {e}")
        db.session.rollback()
        return False

def get_subscriptions(user_id):
    return Subscription.query.filter_by(user_id=user_id).order_by(Subscription.id).all()

def delete_subscription(endpoint):
    try:
        Subscription.query.filter_by(endpoint=endpoint).delete()
        db.session.commit()
        return True
    except SQLAlchemyError as e:
        logging.error(f"Error deleting push subscription ({endpoint}): {e}")
        db.session.rollback()
        return False

def get_reminder_settings(user_id):
    result = {'reminderTime': DEFAULT_REMINDER_TIME, 'reminderEnabled': True}
    for s in Setting.query.filter(Setting.user_id == user_id, Setting.key.like('reminder_%')).all():
        if s.key == 'reminder_time' and s.value:
            result['reminderTime'] = s.value
        elif s.key == 'reminder_enabled':
            result['reminderEnabled'] = s.value == 'true'
    return result

def save_reminder_settings(user_id, reminder_time, reminder_enabled):
    try:
        for key, value in (('reminder_time', reminder_time),
                           ('reminder_enabled', 'true' if reminder_enabled else 'false')):
            setting = Setting.query.filter_by(user_id=user_id, key=key).first()
            if setting is None:
                setting = Setting(user_id=user_id, key=key)
                db.session.add(setting)
            setting.value = value
        db.session.commit()
        return True
    except SQLAlchemyError as e:
        logging.error(f"Error saving settings of user ({user_id}): {e}")
        db.session.rollback()
        return False

def users_with_reminders():
    """(user, reminder_time) for every user whose reminders are not switched off."""
    result = []
    for user in User.query.order_by(User.id).all():
        settings = get_reminder_settings(user.id)
        if settings['reminderEnabled']:
            result.append((user, settings['reminderTime']))
    return result

def get_vapid_keys():
    rows = {k.key: k.value for k in VapidKey.query.all()}
    return rows.get('public'), rows.get('private')

def store_vapid_keys(public_key, private_key):
    db.session.merge(VapidKey(key='public', value=public_key))
    db.session.merge(VapidKey(key='private', value=private_key))
    db.session.commit()

def claim_trigger_mark(kind, period, user_id):
    """Records that ``kind`` fired for user and period. False if it already had."""
    try:
        db.session.add(TriggerMark(kind=kind, period=period, user_id=user_id))
        db.session.commit()
        return True
    except IntegrityError:
        db.session.rollback()
        return False
    except SQLAlchemyError as e:
        logging.error(f"Error claiming {kind} mark for user ({user_id}): {e}")
        db.session.rollback()
        raise

def release_trigger_mark(kind, period, user_id):
    try:
        TriggerMark.query.filter_by(kind=kind, period=period, user_id=user_id).delete()
        db.session.commit()
    except SQLAlchemyError as e:
        logging.error(f"Error releasing {kind} mark for user ({user_id}): {e}")
        db.session.rollback()
