"""
Class analytics report for a month: attendance trend, latest exam results
and per-student performance with risk levels.
"""

import logging
from typing import Dict, Optional

from .attendance import class_attendance_trend, current_month, student_attendance_rates
from .marks import group_by, subject_averages, tally_entries
from .primitives import average, bucket_distribution, correlation
from .scoring import RISK_LEVELS, risk_level, score

logger = logging.getLogger(__name__)


def class_monthly_report(store, class_id: int, month: Optional[str] = None) -> Optional[Dict]:
    """
    Build the monthly analytics report of a class.

    The attendance trend covers the given month (default: the current
    month). Marks come from the class's most recent exam with any marks
    recorded. Per-student attendance rates span every session of the
    class.

    Returns None when the class does not exist.
    """
    class_row = store.fetch_class(class_id)
    if class_row is None:
        return None

    month = month or current_month()

    attendance_trend = class_attendance_trend(store, class_id, month)
    latest_exam = store.fetch_latest_exam_for_class(class_id)

    exam_entries = (
        store.fetch_marks_entries(exam_id=latest_exam['id'], class_id=class_id)
        if latest_exam else []
    )
    marks_by_student = {
        student_id: tally_entries(entries)
        for student_id, entries in group_by(exam_entries, 'student_id').items()
    }
    attendance_rates = student_attendance_rates(store, class_id)

    student_performance = []
    for student in store.fetch_active_students(class_id):
        attendance_rate = attendance_rates.get(student['id'])
        marks = marks_by_student.get(student['id'])
        marks_percent = marks['percent'] if marks else None
        student_performance.append({
            'student_id': student['id'],
            'first_name': student['first_name'],
            'last_name': student['last_name'],
            'roll_no': student['roll_no'],
            'attendance_rate': attendance_rate,
            'marks_percent': marks_percent,
            'performance_score': score(attendance_rate, marks_percent),
            'risk_level': risk_level(attendance_rate, marks_percent),
            'missing_marks': marks['missing_count'] if marks else 0,
        })

    risk_counts = {level: 0 for level in RISK_LEVELS}
    for student in student_performance:
        risk_counts[student['risk_level']] += 1

    pairs = [
        (student['attendance_rate'], student['marks_percent'])
        for student in student_performance
        if student['attendance_rate'] is not None and student['marks_percent'] is not None
    ]
    logger.debug(
        "Class %s month %s: %d students, latest exam %s",
        class_id, month, len(student_performance), latest_exam['id'] if latest_exam else None
    )

    return {
        'class': class_row,
        'month': month,
        'latest_exam': latest_exam,
        'summary': {
            'average_attendance': average(s['attendance_rate'] for s in student_performance),
            'average_marks': average(s['marks_percent'] for s in student_performance),
            'correlation': correlation(pairs),
            'risk_counts': risk_counts,
        },
        'attendance_trend': attendance_trend,
        'subject_averages': subject_averages(exam_entries),
        'marks_distribution': bucket_distribution(s['marks_percent'] for s in student_performance),
        'student_performance': student_performance,
    }
