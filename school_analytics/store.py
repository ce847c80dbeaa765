"""
Read-only query layer over the DuckDB warehouse.

DuckDBStore is the only object the analytics engine talks to. Every method
opens its own short-lived connection, so a store instance holds no
connection state and can be shared between report builds.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .utils.db import fetch_record, fetch_records, get_connection

logger = logging.getLogger(__name__)

DateLike = Union[date, str, None]


def to_date(value: DateLike) -> Optional[date]:
    """Coerce an ISO 'YYYY-MM-DD' string (or a date) to a date."""
    if value is None or value == '':
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


class DuckDBStore:
    """Data store backed by a DuckDB warehouse file."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path

    def _records(self, query: str, params: Optional[List[Any]] = None) -> List[Dict[str, Any]]:
        with get_connection(self.db_path) as conn:
            return fetch_records(conn, query, params)

    def _record(self, query: str, params: Optional[List[Any]] = None) -> Optional[Dict[str, Any]]:
        with get_connection(self.db_path) as conn:
            return fetch_record(conn, query, params)

    # Entity lookups

    def fetch_classes(self) -> List[Dict[str, Any]]:
        return self._records("SELECT id, name, grade, section FROM classes ORDER BY id")

    def fetch_class(self, class_id: int) -> Optional[Dict[str, Any]]:
        return self._record(
            "SELECT id, name, grade, section FROM classes WHERE id = ?", [class_id]
        )

    def fetch_student(self, student_id: int) -> Optional[Dict[str, Any]]:
        return self._record("""
            SELECT
                st.id,
                st.first_name,
                st.last_name,
                st.roll_no,
                st.class_id,
                c.name AS class_name,
                st.status
            FROM students st
            LEFT JOIN classes c ON c.id = st.class_id
            WHERE st.id = ?
        """, [student_id])

    def fetch_exam(self, exam_id: int) -> Optional[Dict[str, Any]]:
        return self._record(
            "SELECT id, name, exam_type, start_date, end_date FROM exams WHERE id = ?",
            [exam_id]
        )

    def fetch_subject(self, subject_id: int) -> Optional[Dict[str, Any]]:
        return self._record(
            "SELECT id, name, code FROM subjects WHERE id = ?", [subject_id]
        )

    # Report inputs

    def fetch_active_students(self, class_id: int) -> List[Dict[str, Any]]:
        """Active students of a class in roll-number-then-first-name order."""
        return self._records("""
            SELECT id, first_name, last_name, roll_no
            FROM students
            WHERE class_id = ? AND status = 'active'
            ORDER BY roll_no NULLS LAST, first_name, id
        """, [class_id])

    def fetch_marks_entries(
        self,
        exam_id: Optional[int] = None,
        class_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        student_id: Optional[int] = None,
        start_date: DateLike = None,
        end_date: DateLike = None
    ) -> List[Dict[str, Any]]:
        """
        Marks entries joined with their exam and subject.

        start_date/end_date bound the exam start date (inclusive). An exam
        without a start date never satisfies a bound.
        """
        clauses = []
        params: List[Any] = []
        for column, value in (
            ('me.exam_id', exam_id),
            ('me.class_id', class_id),
            ('me.subject_id', subject_id),
            ('me.student_id', student_id),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        start, end = to_date(start_date), to_date(end_date)
        if start is not None:
            clauses.append("e.start_date >= ?")
            params.append(start)
        if end is not None:
            clauses.append("e.start_date <= ?")
            params.append(end)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._records(f"""
            SELECT
                me.id,
                me.exam_id,
                e.name AS exam_name,
                e.start_date AS exam_start_date,
                me.class_id,
                me.subject_id,
                sb.name AS subject_name,
                me.student_id,
                me.max_marks,
                me.marks_obtained,
                me.is_absent
            FROM marks_entries me
            INNER JOIN exams e ON e.id = me.exam_id
            INNER JOIN subjects sb ON sb.id = me.subject_id
            {where}
            ORDER BY e.start_date NULLS LAST, me.exam_id, sb.name, me.id
        """, params)
        logger.debug("Fetched %d marks entries (%s)", len(rows), where or "no filter")
        return rows

    def fetch_attendance_entries(
        self,
        class_id: Optional[int] = None,
        student_id: Optional[int] = None,
        start_date: DateLike = None,
        end_date: DateLike = None
    ) -> List[Dict[str, Any]]:
        """Attendance entries ordered by session date; bounds are inclusive."""
        clauses = []
        params: List[Any] = []
        if class_id is not None:
            clauses.append("class_id = ?")
            params.append(class_id)
        if student_id is not None:
            clauses.append("student_id = ?")
            params.append(student_id)
        start, end = to_date(start_date), to_date(end_date)
        if start is not None:
            clauses.append("session_date >= ?")
            params.append(start)
        if end is not None:
            clauses.append("session_date <= ?")
            params.append(end)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._records(f"""
            SELECT id, session_date, class_id, subject_id, student_id, status
            FROM attendance_entries
            {where}
            ORDER BY session_date, id
        """, params)
        logger.debug("Fetched %d attendance entries (%s)", len(rows), where or "no filter")
        return rows

    def fetch_latest_exam_for_class(self, class_id: int) -> Optional[Dict[str, Any]]:
        """Most recent exam with any marks recorded for the class."""
        return self._record("""
            SELECT e.id, e.name, e.exam_type, e.start_date, e.end_date
            FROM exams e
            WHERE EXISTS (
                SELECT 1 FROM marks_entries me
                WHERE me.exam_id = e.id AND me.class_id = ?
            )
            ORDER BY e.start_date DESC NULLS LAST, e.id DESC
            LIMIT 1
        """, [class_id])

    def fetch_class_subject_optional_flag(
        self,
        class_id: int,
        subject_id: int
    ) -> Optional[Dict[str, Any]]:
        """
        Optional-subject settings for a class/subject pair.

        Returns None when the subject is not associated with the class.
        opted_out_student_ids lists students with is_enrolled = false; a
        student without an enrollment row counts as enrolled.
        """
        with get_connection(self.db_path) as conn:
            row = fetch_record(conn, """
                SELECT is_optional
                FROM class_subjects
                WHERE class_id = ? AND subject_id = ?
            """, [class_id, subject_id])
            if row is None:
                return None
            opted_out = fetch_records(conn, """
                SELECT student_id
                FROM student_subjects
                WHERE class_id = ? AND subject_id = ? AND NOT is_enrolled
                ORDER BY student_id
            """, [class_id, subject_id])

        return {
            'is_optional': bool(row['is_optional']),
            'opted_out_student_ids': {r['student_id'] for r in opted_out},
        }
