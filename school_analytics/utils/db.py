"""
Database utilities for the school analytics engine.
Uses DuckDB as the relational store.
"""

import duckdb
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..config import DB_PATH


# Default database path
DEFAULT_DB_PATH = DB_PATH


def get_connection(db_path: Optional[Path] = None) -> duckdb.DuckDBPyConnection:
    """Get a DuckDB connection."""
    db_path = Path(db_path or DEFAULT_DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(db_path))


def fetch_records(
    conn: duckdb.DuckDBPyConnection,
    query: str,
    params: Optional[Sequence[Any]] = None
) -> List[Dict[str, Any]]:
    """
    Execute a query and return rows as plain dicts.

    SQL NULL comes back as None and DATE columns as datetime.date, which
    keeps "no value" distinct from NaN for the aggregation code.
    """
    cursor = conn.execute(query, list(params or []))
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


def fetch_record(
    conn: duckdb.DuckDBPyConnection,
    query: str,
    params: Optional[Sequence[Any]] = None
) -> Optional[Dict[str, Any]]:
    """Execute a query and return the first row as a dict, or None."""
    rows = fetch_records(conn, query, params)
    return rows[0] if rows else None


def init_schemas(db_path: Optional[Path] = None) -> None:
    """Initialize the warehouse tables."""
    with get_connection(db_path) as conn:
        # Roster
        conn.execute("""
            CREATE TABLE IF NOT EXISTS classes (
                id INTEGER PRIMARY KEY,
                name VARCHAR NOT NULL,
                grade INTEGER,
                section VARCHAR
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS subjects (
                id INTEGER PRIMARY KEY,
                name VARCHAR NOT NULL,
                code VARCHAR
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS class_subjects (
                class_id INTEGER NOT NULL,
                subject_id INTEGER NOT NULL,
                is_optional BOOLEAN DEFAULT FALSE,
                PRIMARY KEY (class_id, subject_id)
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS students (
                id INTEGER PRIMARY KEY,
                first_name VARCHAR NOT NULL,
                last_name VARCHAR,
                roll_no INTEGER,
                class_id INTEGER NOT NULL,
                status VARCHAR DEFAULT 'active'
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS student_subjects (
                student_id INTEGER NOT NULL,
                class_id INTEGER NOT NULL,
                subject_id INTEGER NOT NULL,
                is_enrolled BOOLEAN DEFAULT TRUE,
                PRIMARY KEY (student_id, class_id, subject_id)
            )
        """)

        # Exams and marks
        conn.execute("""
            CREATE TABLE IF NOT EXISTS exams (
                id INTEGER PRIMARY KEY,
                name VARCHAR NOT NULL,
                exam_type VARCHAR,
                start_date DATE,
                end_date DATE
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS marks_entries (
                id INTEGER PRIMARY KEY,
                exam_id INTEGER NOT NULL,
                class_id INTEGER NOT NULL,
                subject_id INTEGER NOT NULL,
                student_id INTEGER NOT NULL,
                max_marks DOUBLE NOT NULL,
                marks_obtained DOUBLE,
                is_absent BOOLEAN DEFAULT FALSE
            )
        """)

        # Attendance
        conn.execute("""
            CREATE TABLE IF NOT EXISTS attendance_entries (
                id INTEGER PRIMARY KEY,
                session_date DATE NOT NULL,
                class_id INTEGER NOT NULL,
                subject_id INTEGER,
                student_id INTEGER NOT NULL,
                status VARCHAR NOT NULL
            )
        """)

    print("Database schemas initialized successfully.")
