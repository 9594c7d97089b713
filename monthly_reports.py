import logging
from datetime import datetime

import entry_store
import safe_db
from errors import MailSendFailed
from reports import monthly_workbook
from timeutils import MONTH_NAMES, month_bounds, previous_month

# Outcomes that leave the month unsent, so the mark is released for a later tick
RETRY_REASONS = ('send_failed', 'error', 'email_not_configured')


def email_html(username, month_name, year):
    return f"""
      <div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto;">
        <h2 style="color: #1f2937;">Your Monthly Time Tracking Report</h2>
        <p>Hi {username},</p>
        <p>Please find attached your time tracking report for <strong>{month_name} {year}</strong>.</p>
        <p style="color: #6b7280; font-size: 14px; margin-top: 32px;">
          Best regards,<br>
          Time Tracker
        </p>
      </div>
    """


def monthly_report_due(now, hour=8):
    return now.day == 1 and now.hour >= hour


def send_report_to_user(mailer, user, year, month):
    if not mailer.enabled:
        logging.info(f"Email not configured, skipping report for user {user.username}")
        return {'success': False, 'reason': 'email_not_configured'}
    if not user.email:
        logging.info(f"No email address for user {user.username}, skipping report")
        return {'success': False, 'reason': 'no_email'}

    workbook = monthly_workbook(user.id, year, month)
    if workbook is None:
        logging.info(f"No entries for user {user.username} in {year}-{month:02d}, skipping")
        return {'success': False, 'reason': 'no_entries'}

    month_name = MONTH_NAMES[month - 1]
    sent = mailer.send(
        user.email,
        f"Time Tracking Report - {month_name} {year}",
        email_html(user.username, month_name, year),
        attachments=[(f"time-tracking-{year}-{month:02d}.xlsx", workbook)],
    )
    if not sent:
        failure = MailSendFailed()
        logging.warning(f"{failure.code}: report for {user.email}")
        return {'success': False, 'reason': 'send_failed', 'error': failure.message}

    logging.info(f"Monthly report sent to {user.email}")
    return {'success': True}


def send_all_monthly_reports(mailer, now=None, force=False):
    """Mails last month's report to every user with entries in it.

    Each user is claimed with a ``monthly`` trigger mark first, so overlapping
    runs send at most once per user and month unless ``force`` is set.
    """
    now = now or datetime.now()
    year, month = previous_month(now)
    period = f"{year}-{month:02d}"
    start_date, end_date = month_bounds(year, month)

    logging.debug(f"Checking monthly reports for {period}")
    users = entry_store.users_with_entries_between(start_date, end_date)
    recipients = [(user, user.id, user.username, user.email) for user in users]

    sent = skipped = 0
    details = []
    for user, user_id, username, email in recipients:
        try:
            if not force and not safe_db.claim_trigger_mark('monthly', period, user_id):
                continue
            result = send_report_to_user(mailer, user, year, month)
        except Exception as e:
            logging.exception(f"Monthly report failed for user {username}")
            result = {'success': False, 'reason': 'error', 'error': str(e)}
        if result['success']:
            sent += 1
        else:
            skipped += 1
            if not force and result['reason'] in RETRY_REASONS:
                # let a later tick retry
                safe_db.release_trigger_mark('monthly', period, user_id)
        details.append({'user': username, 'email': email, **result})

    if details:
        logging.info(f"Monthly reports for {period}: {sent} sent, {skipped} skipped")
    return {'sent': sent, 'skipped': skipped, 'details': details}


def run_monthly_reports(mailer, now=None, hour=8):
    now = now or datetime.now()
    if not monthly_report_due(now, hour) or not mailer.enabled:
        return None
    return send_all_monthly_reports(mailer, now)
