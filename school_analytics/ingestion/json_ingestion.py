"""
JSON Ingestion Module
Handles ingestion of JSON files (exams.json, marks.json) into the warehouse.
"""

import json
import pandas as pd
from pathlib import Path
from typing import List, Optional

from ..utils.db import get_connection
from .csv_ingestion import parse_flag, require_columns, to_staging


def _load_records(file_path: Path, keys: List[str]) -> List[dict]:
    with open(file_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    # Handle both array and object formats
    if isinstance(data, dict):
        for key in keys:
            if key in data:
                return data[key]
        return [data]
    return data


def ingest_exams(file_path: Path, db_path: Optional[Path] = None) -> int:
    """
    Ingest exams from JSON into the exams table.

    Strategy: Full Load with Upsert on id. Exams may omit their dates;
    those exams sort last wherever reports order exams chronologically.

    Args:
        file_path: Path to exams.json
            (id, name, exam_type, start_date, end_date)
        db_path: Optional path to DuckDB database

    Returns:
        Number of records processed
    """
    print(f"Ingesting exams from: {file_path}")

    df = pd.DataFrame(_load_records(file_path, ['data', 'exams']))
    require_columns(df, ['id', 'name'])
    for column in ('exam_type', 'start_date', 'end_date'):
        if column not in df.columns:
            df[column] = None

    df['start_date'] = pd.to_datetime(df['start_date']).dt.date
    df['end_date'] = pd.to_datetime(df['end_date']).dt.date
    df = df.drop_duplicates(subset=['id'], keep='last')

    with get_connection(db_path) as conn:
        conn.register('exams_staging', to_staging(df))
        conn.execute("""
            INSERT OR REPLACE INTO exams
            SELECT
                CAST(id AS INTEGER),
                CAST(name AS VARCHAR),
                CAST(exam_type AS VARCHAR),
                CAST(start_date AS DATE),
                CAST(end_date AS DATE)
            FROM exams_staging
        """)

    record_count = len(df)
    print(f"Successfully ingested {record_count} exam records")
    return record_count


def ingest_marks(file_path: Path, db_path: Optional[Path] = None) -> int:
    """
    Ingest marks entries from JSON into the marks_entries table.

    Strategy: Incremental Load with Append
    - Parses JSON array
    - Appends new records with deduplication by id
    - Validates max_marks and score ranges (warnings only)

    Args:
        file_path: Path to marks.json
        db_path: Optional path to DuckDB database

    Returns:
        Number of new records ingested
    """
    print(f"Ingesting marks from: {file_path}")

    df = pd.DataFrame(_load_records(file_path, ['data', 'marks']))
    require_columns(df, ['id', 'exam_id', 'class_id', 'subject_id', 'student_id', 'max_marks'])
    if 'marks_obtained' not in df.columns:
        df['marks_obtained'] = None
    if 'is_absent' not in df.columns:
        df['is_absent'] = False

    df['max_marks'] = pd.to_numeric(df['max_marks'], errors='coerce')
    df['marks_obtained'] = pd.to_numeric(df['marks_obtained'], errors='coerce')
    df['is_absent'] = df['is_absent'].map(parse_flag)

    non_positive = df[~(df['max_marks'] > 0)]
    if not non_positive.empty:
        print(f"Warning: Dropping {len(non_positive)} records without a positive max_marks")
        df = df[df['max_marks'] > 0].copy()

    over_max = df[df['marks_obtained'] > df['max_marks']]
    if not over_max.empty:
        print(f"Warning: {len(over_max)} records with marks_obtained > max_marks")

    df = df.drop_duplicates(subset=['id'], keep='first')

    with get_connection(db_path) as conn:
        conn.register('marks_staging', to_staging(df))

        existing_count = conn.execute(
            "SELECT COUNT(*) FROM marks_entries"
        ).fetchone()[0]

        conn.execute("""
            INSERT INTO marks_entries
            SELECT
                CAST(id AS INTEGER),
                CAST(exam_id AS INTEGER),
                CAST(class_id AS INTEGER),
                CAST(subject_id AS INTEGER),
                CAST(student_id AS INTEGER),
                CAST(max_marks AS DOUBLE),
                CAST(marks_obtained AS DOUBLE),
                CAST(is_absent AS BOOLEAN)
            FROM marks_staging
            WHERE CAST(id AS INTEGER) NOT IN (SELECT id FROM marks_entries)
        """)

        new_count = conn.execute(
            "SELECT COUNT(*) FROM marks_entries"
        ).fetchone()[0]

    records_added = new_count - existing_count
    print(f"Successfully ingested {records_added} new marks records (total: {new_count})")
    return records_added
