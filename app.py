import logging

from flask import Flask
from apscheduler.schedulers.background import BackgroundScheduler

from config import Config
from models import db
from auth import auth_bp, init_auth
from records import records_bp
from cloudinary_utils import init_cloudinary
from email_utils import MailSender
from monthly_reports import run_monthly_reports
from notifications import PushSender, ensure_vapid_keys, check_reminders
from services import Services, get_services


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(records_bp)
    init_auth(app)

    db.init_app(app)
    with app.app_context():
        db.create_all()
        public_key, private_key = ensure_vapid_keys(
            app.config['VAPID_PUBLIC_KEY'], app.config['VAPID_PRIVATE_KEY']
        )

    timeout = app.config['OUTBOUND_TIMEOUT_SECONDS']
    app.extensions['timetracker'] = Services(
        push=PushSender(public_key, private_key, app.config['VAPID_SUBJECT'], timeout=timeout),
        mailer=MailSender(app.config['RESEND_API_KEY'], app.config['MAIL_FROM'], timeout=timeout),
        avatars_enabled=init_cloudinary(app.config),
    )

    if app.config['SCHEDULER_ENABLED']:
        start_scheduler(app)
    return app


def _run_job(app, name, job):
    with app.app_context():
        try:
            job()
        except Exception:
            logging.exception(f"Scheduled job '{name}' failed")


def start_scheduler(app):
    """Reminder and monthly report polling, both on fixed intervals."""
    def reminders():
        check_reminders(get_services().push, catchup_minutes=app.config['REMINDER_CATCHUP_MINUTES'])

    def monthly():
        run_monthly_reports(get_services().mailer, hour=app.config['MONTHLY_REPORT_HOUR'])

    poll = app.config['REMINDER_POLL_SECONDS']
    scheduler = BackgroundScheduler()
    scheduler.add_job(_run_job, 'interval', seconds=poll, args=(app, 'reminders', reminders),
                      id='reminders', max_instances=1, coalesce=True)
    scheduler.add_job(_run_job, 'interval', seconds=60, args=(app, 'monthly-reports', monthly),
                      id='monthly-reports', max_instances=1, coalesce=True)
    scheduler.start()
    app.extensions['scheduler'] = scheduler
    logging.info("Reminder and monthly report scheduler started")
    return scheduler


if __name__ == '__main__':
    create_app().run(debug=True, use_reloader=False)
