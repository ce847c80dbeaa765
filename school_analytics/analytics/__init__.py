from .attendance import class_attendance_alerts, class_attendance_trend, student_attendance_summary
from .class_report import class_monthly_report
from .marks import class_exam_report, overall_percent, student_marks_timeline
from .primitives import average, bucket_distribution, correlation, percent
from .scoring import risk_level, score
from .student_report import student_report

__all__ = [
    'average',
    'bucket_distribution',
    'class_attendance_alerts',
    'class_attendance_trend',
    'class_exam_report',
    'class_monthly_report',
    'correlation',
    'overall_percent',
    'percent',
    'risk_level',
    'score',
    'student_attendance_summary',
    'student_marks_timeline',
    'student_report',
]
