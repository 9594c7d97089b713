from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime

db = SQLAlchemy()

class User(UserMixin, db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(256))
    external_id = db.Column(db.String(100), unique=True)  # linked external identity
    email = db.Column(db.String(200))
    avatar_url = db.Column(db.String(300))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    entries = db.relationship('Entry', backref='user', lazy=True, cascade='all, delete-orphan')
    settings = db.relationship('Setting', backref='user', lazy=True, cascade='all, delete-orphan')
    subscriptions = db.relationship('Subscription', backref='user', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'avatar_url': self.avatar_url,
        }

class Entry(db.Model):
    __tablename__ = 'entries'
    __table_args__ = (db.Index('ix_entries_user_date', 'user_id', 'date'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    check_in = db.Column(db.String(5))  # HH:MM
    check_out = db.Column(db.String(5))
    comment = db.Column(db.Text)
    timezone = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'date': self.date,
            'check_in': self.check_in,
            'check_out': self.check_out,
            'comment': self.comment,
            'timezone': self.timezone,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

class Setting(db.Model):
    __tablename__ = 'settings'
    __table_args__ = (db.UniqueConstraint('user_id', 'key'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    key = db.Column(db.String(50), nullable=False)
    value = db.Column(db.String(200))

class Subscription(db.Model):
    __tablename__ = 'subscriptions'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    endpoint = db.Column(db.String(500), unique=True, nullable=False)
    keys = db.Column(db.Text, nullable=False)  # JSON {p256dh, auth}

class VapidKey(db.Model):
    __tablename__ = 'vapid_keys'
    key = db.Column(db.String(20), primary_key=True)
    value = db.Column(db.Text)

class TriggerMark(db.Model):
    """A periodic trigger already fired for this user and period."""
    __tablename__ = 'trigger_marks'
    __table_args__ = (db.UniqueConstraint('kind', 'period', 'user_id'),)
    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(20), nullable=False)  # 'reminder' or 'monthly'
    period = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD or YYYY-MM
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
