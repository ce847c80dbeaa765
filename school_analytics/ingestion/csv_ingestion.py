"""
CSV Ingestion Module
Handles ingestion of roster and attendance CSV files into the warehouse.
"""

import pandas as pd
from pathlib import Path
from typing import Iterable, Optional

from ..utils.db import get_connection


ATTENDANCE_STATUSES = {'present', 'absent', 'late', 'excused'}

_TRUE_VALUES = {'1', 'true', 'yes', 'y', 't'}


def parse_flag(value, default: bool = False) -> bool:
    """Interpret a CSV/JSON cell as a boolean flag."""
    if isinstance(value, bool):
        return value
    if value is None or pd.isna(value):
        return default
    return str(value).strip().lower() in _TRUE_VALUES


def require_columns(df: pd.DataFrame, required_columns: Iterable[str]) -> None:
    missing_cols = set(required_columns) - set(df.columns)
    if missing_cols:
        raise ValueError(f"Missing required columns: {sorted(missing_cols)}")


def to_staging(df: pd.DataFrame) -> pd.DataFrame:
    """Replace pandas missing markers with None so DuckDB stores NULL."""
    return df.astype(object).where(df.notna(), None)


def _read_csv(file_path: Path) -> pd.DataFrame:
    df = pd.read_csv(file_path, skip_blank_lines=True, encoding='utf-8-sig')
    df.columns = [str(col).strip() for col in df.columns]
    return df


def ingest_classes(file_path: Path, db_path: Optional[Path] = None) -> int:
    """
    Ingest classes from CSV into the classes table.

    Strategy: Full Load with Upsert on id.

    Args:
        file_path: Path to classes.csv (id, name, grade, section)
        db_path: Optional path to DuckDB database

    Returns:
        Number of records processed
    """
    print(f"Ingesting classes from: {file_path}")

    df = _read_csv(file_path)
    require_columns(df, ['id', 'name'])
    if 'grade' not in df.columns:
        df['grade'] = None
    if 'section' not in df.columns:
        df['section'] = None
    df = df.drop_duplicates(subset=['id'], keep='last')

    with get_connection(db_path) as conn:
        conn.register('classes_staging', to_staging(df))
        conn.execute("""
            INSERT OR REPLACE INTO classes
            SELECT
                CAST(id AS INTEGER),
                CAST(name AS VARCHAR),
                CAST(grade AS INTEGER),
                CAST(section AS VARCHAR)
            FROM classes_staging
        """)

    record_count = len(df)
    print(f"Successfully ingested {record_count} class records")
    return record_count


def ingest_subjects(file_path: Path, db_path: Optional[Path] = None) -> int:
    """Ingest subjects (id, name, code) with an upsert on id."""
    print(f"Ingesting subjects from: {file_path}")

    df = _read_csv(file_path)
    require_columns(df, ['id', 'name'])
    if 'code' not in df.columns:
        df['code'] = None
    df = df.drop_duplicates(subset=['id'], keep='last')

    with get_connection(db_path) as conn:
        conn.register('subjects_staging', to_staging(df))
        conn.execute("""
            INSERT OR REPLACE INTO subjects
            SELECT
                CAST(id AS INTEGER),
                CAST(name AS VARCHAR),
                CAST(code AS VARCHAR)
            FROM subjects_staging
        """)

    record_count = len(df)
    print(f"Successfully ingested {record_count} subject records")
    return record_count


def ingest_class_subjects(file_path: Path, db_path: Optional[Path] = None) -> int:
    """
    Ingest class/subject associations (class_id, subject_id, is_optional).

    A subject flagged optional lets students of that class opt out through
    student_subjects.
    """
    print(f"Ingesting class subjects from: {file_path}")

    df = _read_csv(file_path)
    require_columns(df, ['class_id', 'subject_id'])
    if 'is_optional' not in df.columns:
        df['is_optional'] = False
    df['is_optional'] = df['is_optional'].map(parse_flag)
    df = df.drop_duplicates(subset=['class_id', 'subject_id'], keep='last')

    with get_connection(db_path) as conn:
        conn.register('class_subjects_staging', to_staging(df))
        conn.execute("""
            INSERT OR REPLACE INTO class_subjects
            SELECT
                CAST(class_id AS INTEGER),
                CAST(subject_id AS INTEGER),
                CAST(is_optional AS BOOLEAN)
            FROM class_subjects_staging
        """)

    record_count = len(df)
    print(f"Successfully ingested {record_count} class subject records")
    return record_count


def ingest_students(file_path: Path, db_path: Optional[Path] = None) -> int:
    """
    Ingest students data from CSV into the students table.

    Strategy: Full Load with Upsert
    - Loads entire file
    - Upserts based on id (primary key)
    - Missing status defaults to 'active'

    Args:
        file_path: Path to students.csv
            (id, first_name, last_name, roll_no, class_id, status)
        db_path: Optional path to DuckDB database

    Returns:
        Number of records processed
    """
    print(f"Ingesting students from: {file_path}")

    df = _read_csv(file_path)
    require_columns(df, ['id', 'first_name', 'class_id'])
    for column in ('last_name', 'roll_no'):
        if column not in df.columns:
            df[column] = None
    if 'status' not in df.columns:
        df['status'] = 'active'
    df['status'] = df['status'].fillna('active').astype(str).str.strip().str.lower()
    df = df.drop_duplicates(subset=['id'], keep='last')

    with get_connection(db_path) as conn:
        conn.register('students_staging', to_staging(df))
        conn.execute("""
            INSERT OR REPLACE INTO students
            SELECT
                CAST(id AS INTEGER),
                CAST(first_name AS VARCHAR),
                CAST(last_name AS VARCHAR),
                CAST(roll_no AS INTEGER),
                CAST(class_id AS INTEGER),
                CAST(status AS VARCHAR)
            FROM students_staging
        """)

    record_count = len(df)
    print(f"Successfully ingested {record_count} student records")
    return record_count


def ingest_student_subjects(file_path: Path, db_path: Optional[Path] = None) -> int:
    """Ingest optional-subject enrollment flags (student_id, class_id, subject_id, is_enrolled)."""
    print(f"Ingesting student subjects from: {file_path}")

    df = _read_csv(file_path)
    require_columns(df, ['student_id', 'class_id', 'subject_id'])
    if 'is_enrolled' not in df.columns:
        df['is_enrolled'] = True
    df['is_enrolled'] = df['is_enrolled'].map(lambda value: parse_flag(value, default=True))
    df = df.drop_duplicates(subset=['student_id', 'class_id', 'subject_id'], keep='last')

    with get_connection(db_path) as conn:
        conn.register('student_subjects_staging', to_staging(df))
        conn.execute("""
            INSERT OR REPLACE INTO student_subjects
            SELECT
                CAST(student_id AS INTEGER),
                CAST(class_id AS INTEGER),
                CAST(subject_id AS INTEGER),
                CAST(is_enrolled AS BOOLEAN)
            FROM student_subjects_staging
        """)

    record_count = len(df)
    print(f"Successfully ingested {record_count} student subject records")
    return record_count


def ingest_attendance(file_path: Path, db_path: Optional[Path] = None) -> int:
    """
    Ingest attendance data from CSV into the attendance_entries table.

    Strategy: Incremental Load with Append
    - Appends new records
    - Deduplicates by id
    - Drops rows whose status is not a known attendance status

    Args:
        file_path: Path to attendance.csv
            (id, date, class_id, subject_id, student_id, status)
        db_path: Optional path to DuckDB database

    Returns:
        Number of new records ingested
    """
    print(f"Ingesting attendance from: {file_path}")

    df = _read_csv(file_path)
    require_columns(df, ['id', 'date', 'class_id', 'student_id', 'status'])
    if 'subject_id' not in df.columns:
        df['subject_id'] = None

    df['status'] = df['status'].astype(str).str.strip().str.lower()
    invalid = df[~df['status'].isin(ATTENDANCE_STATUSES)]
    if not invalid.empty:
        print(f"Warning: Dropping {len(invalid)} records with invalid status values: "
              f"{sorted(set(invalid['status']))}")
        df = df[df['status'].isin(ATTENDANCE_STATUSES)].copy()

    df['date'] = pd.to_datetime(df['date']).dt.date
    df = df.drop_duplicates(subset=['id'], keep='first')

    with get_connection(db_path) as conn:
        conn.register('attendance_staging', to_staging(df))

        existing_count = conn.execute(
            "SELECT COUNT(*) FROM attendance_entries"
        ).fetchone()[0]

        # Insert only new records (by id)
        conn.execute("""
            INSERT INTO attendance_entries
            SELECT
                CAST(id AS INTEGER),
                CAST("date" AS DATE),
                CAST(class_id AS INTEGER),
                CAST(subject_id AS INTEGER),
                CAST(student_id AS INTEGER),
                CAST(status AS VARCHAR)
            FROM attendance_staging
            WHERE CAST(id AS INTEGER) NOT IN (SELECT id FROM attendance_entries)
        """)

        new_count = conn.execute(
            "SELECT COUNT(*) FROM attendance_entries"
        ).fetchone()[0]

    records_added = new_count - existing_count
    print(f"Successfully ingested {records_added} new attendance records (total: {new_count})")
    return records_added
