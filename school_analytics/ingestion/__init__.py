from .csv_ingestion import (
    ingest_attendance,
    ingest_class_subjects,
    ingest_classes,
    ingest_student_subjects,
    ingest_students,
    ingest_subjects,
)
from .json_ingestion import ingest_exams, ingest_marks

__all__ = [
    'ingest_attendance',
    'ingest_class_subjects',
    'ingest_classes',
    'ingest_exams',
    'ingest_marks',
    'ingest_student_subjects',
    'ingest_students',
    'ingest_subjects',
]
