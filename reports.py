from dataclasses import dataclass, field
from datetime import MAXYEAR, MINYEAR, date as date_cls
from io import BytesIO

import openpyxl
from openpyxl.styles import Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, PageBreak

import entry_store
from errors import NoEntries, ValidationError
from timeutils import (
    MONTH_NAMES, WEEKDAY_NAMES, days_in_month, entry_minutes, format_duration, month_bounds, parse_date,
)

WEEKEND_MARK = '---'
HEADERS = ['Date', 'Weekday', 'Check In', 'Check Out', 'Total Hours', 'Comment']
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


@dataclass
class DayRow:
    date: str
    weekday: str
    check_in: str = ''
    check_out: str = ''
    total: str = ''
    comment: str = ''
    minutes: int = 0

    def as_list(self):
        return [self.date, self.weekday, self.check_in, self.check_out, self.total, self.comment]


@dataclass
class MonthReport:
    year: int
    month: int
    days: list = field(default_factory=list)
    total_minutes: int = 0

    @property
    def title(self):
        return f"{MONTH_NAMES[self.month - 1]} {self.year}"

    @property
    def total(self):
        return format_duration(self.total_minutes)


def months_in_range(start_date, end_date):
    """(year, month) for every calendar month overlapping [start_date, end_date]."""
    start, end = parse_date(start_date, 'start_date'), parse_date(end_date, 'end_date')
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append((year, month))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def month_range(start_month, start_year, end_month, end_year):
    try:
        start_month, start_year = int(start_month), int(start_year)
        end_month, end_year = int(end_month), int(end_year)
    except (TypeError, ValueError):
        raise ValidationError('Month range must be numeric')
    if not (1 <= start_month <= 12 and 1 <= end_month <= 12):
        raise ValidationError('Months must be between 1 and 12')
    if not (MINYEAR <= start_year <= MAXYEAR and MINYEAR <= end_year <= MAXYEAR):
        raise ValidationError(f'Years must be between {MINYEAR} and {MAXYEAR}')
    return month_bounds(start_year, start_month)[0], month_bounds(end_year, end_month)[1]


def default_range(user_id):
    start_date, end_date = entry_store.date_bounds(user_id)
    if not start_date or not end_date:
        raise NoEntries()
    return start_date, end_date


def build_month(year, month, entries_by_date):
    report = MonthReport(year=year, month=month)
    for day in range(1, days_in_month(year, month) + 1):
        current = date_cls(year, month, day)
        iso = current.isoformat()
        row = DayRow(date=iso, weekday=WEEKDAY_NAMES[current.weekday()])
        entry = entries_by_date.get(iso)
        if entry is not None:
            row.check_in = entry.check_in or ''
            row.check_out = entry.check_out or ''
            row.comment = entry.comment or ''
            if entry.check_in and entry.check_out:
                row.minutes = entry_minutes(entry)
                row.total = format_duration(row.minutes)
                report.total_minutes += row.minutes
        elif current.weekday() >= 5:
            row.check_in = WEEKEND_MARK
            row.check_out = WEEKEND_MARK
        report.days.append(row)
    return report


def build_report(user_id, start_date, end_date):
    """Month groups with one row per calendar day. Empty list when the range holds no month."""
    months = months_in_range(start_date, end_date)
    if not months:
        return []
    entries_by_date = {}
    # Ascending id order, so the latest entry of a day wins
    for entry in entry_store.entries_in_range(user_id, start_date, end_date):
        entries_by_date[entry.date] = entry
    return [build_month(year, month, entries_by_date) for year, month in months]


def render_workbook(months):
    wb = openpyxl.Workbook()
    wb.remove(wb.active)

    for month in months:
        ws = wb.create_sheet(month.title)
        ws.merge_cells('A1:F1')
        ws['A1'] = f"Time Tracking Report - {month.title}"
        ws['A1'].font = Font(bold=True, size=14)
        ws.append([])
        ws.append(HEADERS)
        for cell in ws[3]:
            cell.font = Font(bold=True)
        for row in month.days:
            ws.append(row.as_list())
        ws.append([])
        ws.append(['TOTAL', '', '', '', month.total, ''])
        for cell in ws[ws.max_row]:
            cell.font = Font(bold=True)
        for letter_, width in zip('ABCDEF', (12, 12, 12, 12, 12, 40)):
            ws.column_dimensions[letter_].width = width

    if not months:
        ws = wb.create_sheet('No Data')
        ws.append(['No data available for the selected period'])

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def render_pdf(months, username):
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter)
    styles = getSampleStyleSheet()
    elements = []

    if not months:
        elements.append(Paragraph('No data available for the selected period', styles['Title']))

    for i, month in enumerate(months):
        if i:
            elements.append(PageBreak())
        elements.append(Paragraph(f"Time Tracking Report - {username} ({month.title})", styles['Title']))
        elements.append(Spacer(1, 12))
        data = [HEADERS] + [row.as_list() for row in month.days]
        data.append(['TOTAL', '', '', '', month.total, ''])

        table = Table(data, colWidths=[70, 65, 55, 60, 65, 180], repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-2, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('BACKGROUND', (0, 1), (-1, -2), colors.beige),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        elements.append(table)

    doc.build(elements)
    return buffer.getvalue()


def export_filename(username, start_date, end_date, extension='xlsx'):
    start, end = start_date[:7], end_date[:7]
    if start == end:
        return f"time-tracking-{username}-{start}.{extension}"
    return f"time-tracking-{username}-{start}-to-{end}.{extension}"


def monthly_workbook(user_id, year, month):
    """xlsx bytes for one month, or None when the user has no entries in it."""
    start_date, end_date = month_bounds(year, month)
    if not entry_store.entries_in_range(user_id, start_date, end_date):
        return None
    return render_workbook(build_report(user_id, start_date, end_date))
