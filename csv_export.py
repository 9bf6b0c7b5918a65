"""
CSV export of work logs.
Output is UTF-8 with a BOM so spreadsheet applications detect the encoding.
"""
from datetime import date, datetime
from typing import Optional, Union

from config import MAX_EXPORT_DAYS
from errors import ValidationError
from schemas import WorkLogView

BOM = "\ufeff"
CSV_HEADERS = ["date", "user", "hours", "project", "category", "details"]


def escape_csv_value(value) -> str:
    """
    Escape one CSV field.

    The field is quoted, with internal quotes doubled, only when it contains
    a comma, a double quote or a newline.

    Examples:
        None      -> ""
        "plain"   -> "plain"
        'a,b"c'   -> '"a,b""c"'
    """
    if value is None:
        return ""

    text = str(value)
    if "," in text or '"' in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def format_date_for_csv(value: Union[date, datetime, str, None]) -> str:
    """Render the YYYY-MM-DD part of a date, datetime or ISO string."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).split("T")[0]


def serialize_work_logs(rows: list[WorkLogView]) -> str:
    """
    Serialize work log rows to CSV text.

    Returns:
        BOM + header line + one line per row, joined by "\\n"
    """
    lines = [",".join(CSV_HEADERS)]

    for row in rows:
        fields = [
            format_date_for_csv(row.date),
            row.user_name or row.user_email,
            row.hours,
            row.project_name,
            row.category_name,
            row.details,
        ]
        lines.append(",".join(escape_csv_value(field) for field in fields))

    return BOM + "\n".join(lines)


def validate_export_window(start: Optional[date], end: Optional[date]) -> None:
    """
    Check the export-only date window.

    Raises:
        ValidationError: Missing dates or a window longer than MAX_EXPORT_DAYS
    """
    if start is None or end is None:
        raise ValidationError("Start date and end date are required")
    if (end - start).days > MAX_EXPORT_DAYS:
        raise ValidationError(f"Date range cannot exceed {MAX_EXPORT_DAYS} days")


def export_filename(start: date, end: date) -> str:
    return f"work-logs-{start.isoformat()}_{end.isoformat()}.csv"
