"""
Performance scoring: a weighted attendance/marks blend and a risk bucket.
"""

from typing import Optional

ATTENDANCE_WEIGHT = 0.4
MARKS_WEIGHT = 0.6

HIGH_RISK_ATTENDANCE = 0.75
HIGH_RISK_MARKS = 0.4
MEDIUM_RISK_ATTENDANCE = 0.85
MEDIUM_RISK_MARKS = 0.6

RISK_LEVELS = ('low', 'medium', 'high', 'unknown')


def score(attendance_rate: Optional[float], marks_percent: Optional[float]) -> Optional[float]:
    """
    Weighted performance score.

    A missing input drops out and the remaining weight is renormalised, so
    a marks-only student scores exactly their marks percent.
    """
    total = 0.0
    total_weight = 0.0
    if attendance_rate is not None:
        total += attendance_rate * ATTENDANCE_WEIGHT
        total_weight += ATTENDANCE_WEIGHT
    if marks_percent is not None:
        total += marks_percent * MARKS_WEIGHT
        total_weight += MARKS_WEIGHT
    if not total_weight:
        return None
    return total / total_weight


def risk_level(attendance_rate: Optional[float], marks_percent: Optional[float]) -> str:
    if attendance_rate is None and marks_percent is None:
        return 'unknown'
    attendance = attendance_rate if attendance_rate is not None else 0.0
    marks = marks_percent if marks_percent is not None else 0.0
    if attendance < HIGH_RISK_ATTENDANCE or marks < HIGH_RISK_MARKS:
        return 'high'
    if attendance < MEDIUM_RISK_ATTENDANCE or marks < MEDIUM_RISK_MARKS:
        return 'medium'
    return 'low'
