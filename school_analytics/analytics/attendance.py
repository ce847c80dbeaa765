"""
Attendance aggregation: class daily present-rate series and per-student
attendance summaries.
"""

import calendar
import logging
import re
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from ..store import DateLike
from .primitives import percent

logger = logging.getLogger(__name__)

PRESENT = 'present'
LOW_ATTENDANCE_THRESHOLD = 0.75

_MONTH_PATTERN = re.compile(r'^(\d{4})-(\d{2})$')


def current_month() -> str:
    return date.today().strftime('%Y-%m')


def month_bounds(year_month: str) -> Tuple[date, date]:
    """First and last day of a 'YYYY-MM' month."""
    match = _MONTH_PATTERN.match(year_month or '')
    if not match:
        raise ValueError(f"Invalid month {year_month!r}, expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month {year_month!r}, expected YYYY-MM")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def present_rate(entries: Iterable[Dict]) -> Optional[float]:
    """Share of entries marked present; None when there are no entries."""
    total = 0
    present = 0
    for entry in entries:
        total += 1
        if entry['status'] == PRESENT:
            present += 1
    return percent(present, total)


def summarize_attendance(entries: Iterable[Dict]) -> Dict:
    """Status counts, present rate and a dated log over attendance entries."""
    counts = {'total': 0, 'present': 0, 'absent': 0, 'late': 0, 'excused': 0}
    log = []
    for entry in entries:
        counts['total'] += 1
        if entry['status'] in counts:
            counts[entry['status']] += 1
        log.append({'date': entry['session_date'], 'status': entry['status']})

    log.sort(key=lambda row: row['date'])
    return {
        **counts,
        'rate': percent(counts['present'], counts['total']),
        'log': log,
    }


def class_attendance_trend(store, class_id: int, year_month: str) -> List[Dict]:
    """
    Daily present rate for a class within one month.

    Only dates with at least one attendance entry appear, in date order.
    """
    start, end = month_bounds(year_month)
    entries = store.fetch_attendance_entries(class_id=class_id, start_date=start, end_date=end)

    by_date: Dict[date, List[Dict]] = {}
    for entry in entries:
        by_date.setdefault(entry['session_date'], []).append(entry)

    return [
        {'date': session_date, 'present_rate': present_rate(day_entries)}
        for session_date, day_entries in sorted(by_date.items())
    ]


def student_attendance_summary(
    store,
    student_id: int,
    start_date: DateLike = None,
    end_date: DateLike = None
) -> Dict:
    """Attendance counts by status, present rate and log for one student."""
    entries = store.fetch_attendance_entries(
        student_id=student_id, start_date=start_date, end_date=end_date
    )
    return summarize_attendance(entries)


def student_month_present_rate(store, student_id: int, year_month: str) -> Optional[float]:
    start, end = month_bounds(year_month)
    entries = store.fetch_attendance_entries(student_id=student_id, start_date=start, end_date=end)
    return present_rate(entries)


def student_attendance_rates(store, class_id: int) -> Dict[int, Optional[float]]:
    """Present rate per student over every attendance session of a class."""
    by_student: Dict[int, List[Dict]] = {}
    for entry in store.fetch_attendance_entries(class_id=class_id):
        by_student.setdefault(entry['student_id'], []).append(entry)
    return {student_id: present_rate(entries) for student_id, entries in by_student.items()}


def class_attendance_alerts(
    store,
    class_id: int,
    threshold: float = LOW_ATTENDANCE_THRESHOLD,
    limit: int = 20
) -> Optional[List[Dict]]:
    """
    Active students of a class whose present rate is below the threshold.

    Lowest rate first; students with no attendance recorded are skipped.
    Returns None when the class does not exist.
    """
    class_row = store.fetch_class(class_id)
    if class_row is None:
        return None

    rates = student_attendance_rates(store, class_id)
    alerts = []
    for student in store.fetch_active_students(class_id):
        rate = rates.get(student['id'])
        if rate is not None and rate < threshold:
            alerts.append({
                'student_id': student['id'],
                'first_name': student['first_name'],
                'last_name': student['last_name'],
                'roll_no': student['roll_no'],
                'class_name': class_row['name'],
                'present_rate': rate,
            })

    alerts.sort(key=lambda row: row['present_rate'])
    logger.debug("Class %s: %d students below %.2f attendance", class_id, len(alerts), threshold)
    return alerts[:limit]
