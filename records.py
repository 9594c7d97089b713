from datetime import datetime
from io import BytesIO

from flask import Blueprint, request, jsonify, send_file
from flask_login import login_required, current_user
from flask_paginate import get_page_args

import lifecycle
import reports
from errors import TimeTrackerError, ValidationError
from monthly_reports import send_all_monthly_reports, send_report_to_user
from safe_db import get_reminder_settings, save_reminder_settings, get_user_by_id
from services import get_services
from timeutils import parse_hhmm, previous_month

records_bp = Blueprint('records', __name__)


@records_bp.app_errorhandler(TimeTrackerError)
def handle_time_tracker_error(error):
    return jsonify(error.to_dict()), error.status


def _body():
    return request.get_json(silent=True) or {}


@records_bp.route('/api/status')
@login_required
def status():
    return jsonify(lifecycle.status(current_user.id, request.args.get('date')))


@records_bp.route('/api/clock-in', methods=['POST'])
@login_required
def clock_in():
    data = _body()
    result = lifecycle.clock_in(current_user.id, data.get('date'), data.get('time'), data.get('timezone'))
    return jsonify({'success': True, **result})


@records_bp.route('/api/clock-out', methods=['POST'])
@login_required
def clock_out():
    data = _body()
    result = lifecycle.clock_out(
        current_user.id, data.get('date'), data.get('time'), data.get('timezone'), data.get('comment')
    )
    return jsonify({'success': True, **result})


@records_bp.route('/api/toggle', methods=['POST'])
@login_required
def toggle():
    data = _body()
    return jsonify(lifecycle.toggle(current_user.id, data.get('date'), data.get('time'), data.get('timezone')))


@records_bp.route('/api/entries')
@login_required
def list_entries():
    page, per_page, _ = get_page_args(page_parameter='page', per_page_parameter='per_page')
    return jsonify(lifecycle.list_entries(current_user.id, page=max(page, 1), per_page=max(per_page, 1)))


@records_bp.route('/api/entries/<int:entry_id>', methods=['PUT'])
@login_required
def update_entry(entry_id):
    data = _body()
    entry = lifecycle.update_entry(
        current_user.id, entry_id,
        date=data.get('date'),
        check_in=data.get('check_in'),
        check_out=data.get('check_out'),
        comment=data.get('comment'),
    )
    return jsonify({'success': True, 'entry': entry})


@records_bp.route('/api/entries/<int:entry_id>/comment', methods=['PUT'])
@login_required
def update_comment(entry_id):
    entry = lifecycle.update_comment(current_user.id, entry_id, _body().get('comment'))
    return jsonify({'success': True, 'entry': entry})


@records_bp.route('/api/entries/<int:entry_id>', methods=['DELETE'])
@login_required
def delete_entry(entry_id):
    lifecycle.delete_entry(current_user.id, entry_id)
    return jsonify({'success': True})


def _export_range():
    keys = ('startMonth', 'startYear', 'endMonth', 'endYear')
    values = [request.args.get(k) for k in keys]
    if all(values):
        return reports.month_range(*values)
    return reports.default_range(current_user.id)


@records_bp.route('/api/export')
@login_required
def export_excel():
    start_date, end_date = _export_range()
    months = reports.build_report(current_user.id, start_date, end_date)
    buffer = BytesIO(reports.render_workbook(months))
    return send_file(
        buffer,
        as_attachment=True,
        download_name=reports.export_filename(current_user.username, start_date, end_date),
        mimetype=reports.XLSX_MIMETYPE,
    )


@records_bp.route('/api/export.pdf')
@login_required
def export_pdf():
    start_date, end_date = _export_range()
    months = reports.build_report(current_user.id, start_date, end_date)
    buffer = BytesIO(reports.render_pdf(months, current_user.username))
    return send_file(
        buffer,
        as_attachment=True,
        download_name=reports.export_filename(current_user.username, start_date, end_date, 'pdf'),
        mimetype='application/pdf',
    )


@records_bp.route('/api/settings')
@login_required
def get_settings():
    return jsonify(get_reminder_settings(current_user.id))


@records_bp.route('/api/settings', methods=['POST'])
@login_required
def save_settings():
    data = _body()
    reminder_time = data.get('reminderTime', '20:00')
    parse_hhmm(reminder_time, 'reminderTime')
    reminder_enabled = data.get('reminderEnabled', True)
    if not isinstance(reminder_enabled, bool):
        raise ValidationError('reminderEnabled must be true or false')
    if save_reminder_settings(current_user.id, reminder_time, reminder_enabled):
        return jsonify({'success': True})
    return jsonify({'error': 'Failed to save settings'}), 500


@records_bp.route('/api/admin/send-monthly-reports', methods=['POST'])
@login_required
def manual_send_monthly_reports():
    result = send_all_monthly_reports(get_services().mailer, force=bool(_body().get('force')))
    return jsonify({'success': True, **result})


@records_bp.route('/api/admin/send-report/<int:user_id>', methods=['POST'])
@login_required
def manual_send_report(user_id):
    user = get_user_by_id(user_id)
    if user is None:
        return jsonify({'error': 'User not found'}), 404
    data = _body()
    default_year, default_month = previous_month(datetime.now())
    try:
        year = int(data.get('year') or default_year)
        month = int(data.get('month') or default_month)
    except (TypeError, ValueError):
        raise ValidationError('year and month must be numbers')
    reports.month_range(month, year, month, year)
    result = send_report_to_user(get_services().mailer, user, year, month)
    return jsonify({**result, 'user': user.username, 'email': user.email})
