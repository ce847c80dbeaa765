"""
Student analytics report: attendance, marks timeline, trend direction and
the attendance/marks correlation across exams.
"""

import logging
from typing import Dict, List, Optional

from ..store import DateLike, to_date
from .attendance import student_attendance_summary, student_month_present_rate
from .marks import student_marks_timeline
from .primitives import correlation

logger = logging.getLogger(__name__)

STEADY_DELTA = 0.02


def trend_direction(exam_rows: List[Dict]) -> Dict:
    """
    Direction of the last two scored exams in chronological order.

    A change smaller than two percentage points counts as steady.
    """
    scored = [row for row in exam_rows if row['percent'] is not None]
    if len(scored) < 2:
        return {'direction': 'unknown', 'delta': None}

    delta = scored[-1]['percent'] - scored[-2]['percent']
    if abs(delta) < STEADY_DELTA:
        direction = 'steady'
    elif delta > 0:
        direction = 'improving'
    else:
        direction = 'declining'
    return {'direction': direction, 'delta': delta}


def attendance_marks_correlation(store, student_id: int, exam_rows: List[Dict]) -> Optional[float]:
    """Correlate each dated exam's percent with attendance in that exam's month."""
    pairs = []
    for exam in exam_rows:
        if exam['start_date'] is None or exam['percent'] is None:
            continue
        rate = student_month_present_rate(store, student_id, exam['start_date'].strftime('%Y-%m'))
        if rate is not None:
            pairs.append((rate, exam['percent']))
    return correlation(pairs)


def student_report(
    store,
    student_id: int,
    start_date: DateLike = None,
    end_date: DateLike = None
) -> Optional[Dict]:
    """
    Build the analytics report of one student over an optional date window.

    Returns None when the student does not exist.
    """
    start, end = to_date(start_date), to_date(end_date)

    student = store.fetch_student(student_id)
    if student is None:
        return None

    attendance = student_attendance_summary(store, student_id, start, end)
    marks = student_marks_timeline(store, student_id, start, end)
    logger.debug(
        "Student %s: %d attendance entries, %d exams",
        student_id, attendance['total'], len(marks['exams'])
    )

    return {
        'student': student,
        'attendance': attendance,
        'marks': marks,
        'trend': trend_direction(marks['exams']),
        'correlation': attendance_marks_correlation(store, student_id, marks['exams']),
    }
