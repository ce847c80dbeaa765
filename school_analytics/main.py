"""
School Analytics - Main Entry Point

Loads source files into the warehouse and prints analytics reports:
1. load        Initialize schemas and ingest a directory of source files
2. class-exam  Exam results for a class (optionally one subject)
3. class-month Monthly class report (attendance trend, latest exam, risk)
4. student     Student report over an optional date window
5. alerts      Students below the attendance threshold

Usage:
    school-analytics load --data-dir /path/to/data
    school-analytics class-exam --class-id 1 --exam-id 2
    school-analytics class-month --class-id 1 --month 2025-01
    school-analytics student --student-id 7 --start-date 2025-01-01 --json
"""

import argparse
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from .analytics import class_attendance_alerts, class_exam_report, class_monthly_report, student_report
from .config import DATA_DIR, LOG_LEVEL
from .exports import report_to_json
from .ingestion import (
    ingest_attendance,
    ingest_class_subjects,
    ingest_classes,
    ingest_exams,
    ingest_marks,
    ingest_student_subjects,
    ingest_students,
    ingest_subjects,
)
from .query_results import (
    show_attendance_alerts,
    show_class_exam_report,
    show_class_monthly_report,
    show_student_report,
)
from .store import DuckDBStore
from .utils.db import init_schemas


SOURCE_FILES = [
    ('classes', 'classes.csv', ingest_classes),
    ('subjects', 'subjects.csv', ingest_subjects),
    ('class_subjects', 'class_subjects.csv', ingest_class_subjects),
    ('students', 'students.csv', ingest_students),
    ('student_subjects', 'student_subjects.csv', ingest_student_subjects),
    ('attendance', 'attendance.csv', ingest_attendance),
    ('exams', 'exams.json', ingest_exams),
    ('marks', 'marks.json', ingest_marks),
]


def load_directory(data_dir: Path, db_path: Optional[Path] = None) -> Dict[str, int]:
    """
    Initialize the warehouse and ingest every known source file in data_dir.

    Args:
        data_dir: Directory containing source data files
        db_path: Optional path to DuckDB database

    Returns:
        Dictionary with record counts per source
    """
    data_dir = Path(data_dir)
    start_time = datetime.now()

    print("\n" + "="*60)
    print("     SCHOOL ANALYTICS - LOAD STARTED")
    print("="*60)
    print(f"\nData directory: {data_dir}")

    init_schemas(db_path)

    results = {}
    for name, file_name, ingest in SOURCE_FILES:
        source = data_dir / file_name
        if source.exists():
            results[name] = ingest(source, db_path)
        else:
            print(f"Warning: {source} not found")

    duration = datetime.now() - start_time
    print("\n" + "="*60)
    print("     LOAD COMPLETE")
    print("="*60)
    print(f"\nDuration: {duration}")
    print(f"Total records loaded: {sum(results.values())}")

    return results


def _emit(report, as_json: bool, show) -> int:
    if report is None:
        print("Error: No such class, exam or student")
        return 1
    if as_json:
        print(report_to_json(report))
    else:
        show(report)
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        '--db-path',
        type=Path,
        default=None,
        help='Path to DuckDB database file'
    )

    parser = argparse.ArgumentParser(description='School Analytics')
    subparsers = parser.add_subparsers(dest='command', required=True)

    load = subparsers.add_parser('load', parents=[common], help='Load source files into the warehouse')
    load.add_argument(
        '--data-dir',
        type=Path,
        default=DATA_DIR,
        help='Directory containing source data files'
    )

    class_exam = subparsers.add_parser('class-exam', parents=[common], help='Exam results of a class')
    class_exam.add_argument('--class-id', type=int, required=True)
    class_exam.add_argument('--exam-id', type=int, required=True)
    class_exam.add_argument('--subject-id', type=int, default=None)

    class_month = subparsers.add_parser('class-month', parents=[common], help='Monthly class analytics')
    class_month.add_argument('--class-id', type=int, required=True)
    class_month.add_argument('--month', type=str, default=None, help='YYYY-MM (default: current month)')

    student = subparsers.add_parser('student', parents=[common], help='Student analytics')
    student.add_argument('--student-id', type=int, required=True)
    student.add_argument('--start-date', type=str, default=None, help='YYYY-MM-DD')
    student.add_argument('--end-date', type=str, default=None, help='YYYY-MM-DD')

    alerts = subparsers.add_parser('alerts', parents=[common], help='Students with low attendance')
    alerts.add_argument('--class-id', type=int, required=True)

    for report_parser in (class_exam, class_month, student, alerts):
        report_parser.add_argument('--json', action='store_true', help='Print the raw report as JSON')

    return parser


def run(args: argparse.Namespace) -> int:
    if args.command == 'load':
        if not args.data_dir.exists():
            print(f"Error: Data directory not found: {args.data_dir}")
            return 1
        load_directory(args.data_dir, args.db_path)
        return 0

    store = DuckDBStore(args.db_path)
    if args.command == 'class-exam':
        report = class_exam_report(store, args.class_id, args.exam_id, args.subject_id)
        return _emit(report, args.json, show_class_exam_report)
    if args.command == 'class-month':
        report = class_monthly_report(store, args.class_id, args.month)
        return _emit(report, args.json, show_class_monthly_report)
    if args.command == 'student':
        report = student_report(store, args.student_id, args.start_date, args.end_date)
        return _emit(report, args.json, show_student_report)
    if args.command == 'alerts':
        report = class_attendance_alerts(store, args.class_id)
        return _emit(report, args.json, show_attendance_alerts)

    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> int:
    """Main entry point for CLI execution."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        return run(args)
    except Exception as e:
        print(f"\nError: {args.command} failed!")
        print(f"  {type(e).__name__}: {e}")
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
