"""Tests for the monthly e-mailed report."""

import base64
from datetime import datetime
from io import BytesIO
from unittest.mock import MagicMock, patch

import openpyxl
import pytest
from sqlalchemy.exc import OperationalError

import lifecycle
import safe_db
from email_utils import MailSender
from models import TriggerMark
from monthly_reports import monthly_report_due, run_monthly_reports, send_all_monthly_reports, send_report_to_user

FIRST_OF_APRIL = datetime(2026, 4, 1, 8, 0)


@pytest.fixture
def mailer():
    return MailSender("re_test_key", "Time Tracker <noreply@example.com>", timeout=3)


def _ok_response():
    response = MagicMock()
    response.ok = True
    response.status_code = 200
    return response


def _failed_response():
    response = MagicMock()
    response.ok = False
    response.status_code = 500
    response.text = "boom"
    return response


def _work(user_id, day="2026-03-10"):
    lifecycle.clock_in(user_id, day, "09:00")
    lifecycle.clock_out(user_id, day, "17:00")


class TestDue:
    def test_due_on_first_day_from_report_hour(self):
        assert monthly_report_due(FIRST_OF_APRIL)
        assert monthly_report_due(datetime(2026, 4, 1, 8, 3))

    def test_not_due_otherwise(self):
        assert not monthly_report_due(datetime(2026, 4, 1, 7, 59))
        assert not monthly_report_due(datetime(2026, 4, 2, 8, 0))

    def test_run_outside_window_does_nothing(self, mailer):
        assert run_monthly_reports(mailer, now=datetime(2026, 4, 15, 8, 0)) is None


class TestSendReportToUser:
    def test_sends_previous_month_as_attachment(self, mailer, user):
        _work(user.id)
        with patch("email_utils.requests.post", return_value=_ok_response()) as post:
            result = send_report_to_user(mailer, user, 2026, 3)

        assert result == {"success": True}
        payload = post.call_args.kwargs["json"]
        assert payload["to"] == ["alice@example.com"]
        assert payload["subject"] == "Time Tracking Report - March 2026"
        [attachment] = payload["attachments"]
        assert attachment["filename"] == "time-tracking-2026-03.xlsx"
        wb = openpyxl.load_workbook(BytesIO(base64.b64decode(attachment["content"])))
        assert wb.sheetnames == ["March 2026"]
        assert post.call_args.kwargs["timeout"] == 3

    def test_user_without_email_is_skipped(self, mailer, make_user):
        user = make_user("noemail")
        _work(user.id)
        assert send_report_to_user(mailer, user, 2026, 3)["reason"] == "no_email"

    def test_user_without_entries_is_skipped(self, mailer, user):
        assert send_report_to_user(mailer, user, 2026, 3)["reason"] == "no_entries"

    def test_disabled_mailer(self, user):
        _work(user.id)
        result = send_report_to_user(MailSender(None, "x"), user, 2026, 3)
        assert result["reason"] == "email_not_configured"


class TestSendAll:
    def test_failures_are_isolated_per_user(self, mailer, user, make_user):
        other = make_user("erin", "erin@example.com")
        _work(user.id)
        _work(other.id)

        with patch("email_utils.requests.post", side_effect=[_failed_response(), _ok_response()]):
            result = send_all_monthly_reports(mailer, now=FIRST_OF_APRIL)

        assert result["sent"] == 1
        assert result["skipped"] == 1
        assert [d["reason"] for d in result["details"] if not d["success"]] == ["send_failed"]

    def test_only_users_active_last_month(self, mailer, user, make_user):
        idle = make_user("idle", "idle@example.com")
        _work(user.id)
        _work(idle.id, day="2026-02-10")

        with patch("email_utils.requests.post", return_value=_ok_response()) as post:
            result = send_all_monthly_reports(mailer, now=FIRST_OF_APRIL)

        assert result["sent"] == 1
        assert post.call_count == 1

    def test_second_run_does_not_resend(self, mailer, user):
        _work(user.id)
        with patch("email_utils.requests.post", return_value=_ok_response()) as post:
            run_monthly_reports(mailer, now=FIRST_OF_APRIL)
            second = run_monthly_reports(mailer, now=datetime(2026, 4, 1, 8, 1))

        assert post.call_count == 1
        assert second == {"sent": 0, "skipped": 0, "details": []}

    def test_failed_send_is_retried_on_next_tick(self, mailer, user):
        _work(user.id)
        with patch("email_utils.requests.post", side_effect=[_failed_response(), _ok_response()]) as post:
            run_monthly_reports(mailer, now=FIRST_OF_APRIL)
            second = run_monthly_reports(mailer, now=datetime(2026, 4, 1, 8, 1))

        assert post.call_count == 2
        assert second["sent"] == 1

    def test_forced_run_resends(self, mailer, user):
        _work(user.id)
        with patch("email_utils.requests.post", return_value=_ok_response()) as post:
            send_all_monthly_reports(mailer, now=FIRST_OF_APRIL)
            forced = send_all_monthly_reports(mailer, now=FIRST_OF_APRIL, force=True)

        assert post.call_count == 2
        assert forced["sent"] == 1

    def test_january_reports_december(self, mailer, user):
        _work(user.id, day="2025-12-15")
        with patch("email_utils.requests.post", return_value=_ok_response()) as post:
            result = send_all_monthly_reports(mailer, now=datetime(2026, 1, 1, 8, 0))

        assert result["sent"] == 1
        assert post.call_args.kwargs["json"]["subject"] == "Time Tracking Report - December 2025"


class TestMarkFailures:
    def test_claim_error_does_not_stop_other_users(self, mailer, user, make_user):
        other = make_user("gina", "gina@example.com")
        _work(user.id)
        _work(other.id)
        locked = OperationalError("INSERT INTO trigger_marks", {}, Exception("database is locked"))

        with patch("monthly_reports.safe_db.claim_trigger_mark", side_effect=[locked, True]), \
                patch("email_utils.requests.post", return_value=_ok_response()) as post:
            result = send_all_monthly_reports(mailer, now=FIRST_OF_APRIL)

        assert post.call_count == 1
        assert result["sent"] == 1
        assert [(d["user"], d["reason"]) for d in result["details"] if not d["success"]] == [("alice", "error")]

    def test_claim_reraises_database_errors(self, user):
        locked = OperationalError("INSERT INTO trigger_marks", {}, Exception("database is locked"))
        with patch("sqlalchemy.orm.Session.commit", side_effect=locked):
            with pytest.raises(OperationalError):
                safe_db.claim_trigger_mark("monthly", "2026-03", user.id)

        assert safe_db.claim_trigger_mark("monthly", "2026-03", user.id)
        assert TriggerMark.query.filter_by(kind="monthly", period="2026-03").count() == 1


class TestUnconfiguredMailer:
    def test_month_stays_unsent_until_mail_is_configured(self, mailer, user):
        _work(user.id)
        first = send_all_monthly_reports(MailSender(None, "x"), now=FIRST_OF_APRIL)
        assert first["details"][0]["reason"] == "email_not_configured"
        assert TriggerMark.query.filter_by(kind="monthly").count() == 0

        with patch("email_utils.requests.post", return_value=_ok_response()) as post:
            second = send_all_monthly_reports(mailer, now=datetime(2026, 4, 1, 9, 0))

        assert post.call_count == 1
        assert second["sent"] == 1

    def test_scheduled_run_skips_without_mailer(self, user):
        _work(user.id)
        assert run_monthly_reports(MailSender(None, "x"), now=FIRST_OF_APRIL) is None
        assert TriggerMark.query.count() == 0
