import os


def _env_int(name, default):
    value = os.getenv(name)
    return int(value) if value else default


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'time-tracker-secret-change-in-production')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///timetracker.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
    PER_PAGE = 50

    # Generated and stored in the database on first start when left empty
    VAPID_PUBLIC_KEY = os.getenv('VAPID_PUBLIC_KEY')
    VAPID_PRIVATE_KEY = os.getenv('VAPID_PRIVATE_KEY')
    VAPID_SUBJECT = os.getenv('VAPID_SUBJECT', 'mailto:admin@example.com')

    RESEND_API_KEY = os.getenv('RESEND_API_KEY')
    MAIL_FROM = os.getenv('MAIL_FROM', 'Time Tracker <noreply@timetracker.app>')

    CLOUDINARY_CLOUD_NAME = os.getenv('CLOUDINARY_CLOUD_NAME')
    CLOUDINARY_API_KEY = os.getenv('CLOUDINARY_API_KEY')
    CLOUDINARY_API_SECRET = os.getenv('CLOUDINARY_API_SECRET')

    REMINDER_POLL_SECONDS = _env_int('REMINDER_POLL_SECONDS', 60)
    REMINDER_CATCHUP_MINUTES = _env_int('REMINDER_CATCHUP_MINUTES', 30)
    MONTHLY_REPORT_HOUR = _env_int('MONTHLY_REPORT_HOUR', 8)
    OUTBOUND_TIMEOUT_SECONDS = _env_int('OUTBOUND_TIMEOUT_SECONDS', 10)

    SCHEDULER_ENABLED = os.getenv('SCHEDULER_ENABLED', '1') == '1'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
