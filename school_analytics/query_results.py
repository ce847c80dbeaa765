"""
Query Results Helper

Renders analytics reports as pandas tables for the terminal. Ratios are
shown as percentages; statistics without data are shown as '--'.
"""

from typing import Dict, Iterable, List, Optional

import pandas as pd


NO_DATA = '--'


def format_percent(value: Optional[float]) -> str:
    if value is None or pd.isna(value):
        return NO_DATA
    return f"{round(value * 100, 1)}%"


def format_number(value: Optional[float], digits: int = 2) -> str:
    if value is None or pd.isna(value):
        return NO_DATA
    return f"{value:.{digits}f}"


def _table(rows: List[Dict], columns: List[str], percent_columns: Iterable[str] = ()) -> str:
    if not rows:
        return "(none)"
    df = pd.DataFrame(rows, dtype=object)
    for column in columns:
        if column not in df.columns:
            df[column] = None
    df = df[columns].copy()
    for column in percent_columns:
        df[column] = df[column].map(format_percent)
    return df.where(df.notna(), NO_DATA).to_string(index=False)


def _section(title: str) -> None:
    print("\n" + "-"*50)
    print(title)
    print("-"*50)


def show_class_exam_report(report: Dict) -> None:
    """Print a class exam report."""
    summary = report['summary']
    subject = report['subject']

    print("\n" + "="*70)
    print(f"CLASS {report['class']['name']} - {report['exam']['name']}"
          + (f" - {subject['name']}" if subject else ""))
    print("="*70)

    _section("SUMMARY")
    print(f"Students:  {summary['total_students']}")
    print(f"Average:   {format_percent(summary['average_percent'])}")
    print(f"Highest:   {format_percent(summary['highest_percent'])}")
    print(f"Lowest:    {format_percent(summary['lowest_percent'])}")
    print(f"Pass/Fail: {summary['pass_count']}/{summary['fail_count']}")
    print(f"Absent:    {summary['absent_count']}")
    print(f"Missing:   {summary['missing_count']}")

    _section("DISTRIBUTION")
    print(_table(report['distribution'], ['label', 'count']))

    if report['subject_breakdown']:
        _section("SUBJECT BREAKDOWN")
        print(_table(report['subject_breakdown'], ['subject_name', 'avg_percent'], ['avg_percent']))

    performer_columns = ['roll_no', 'first_name', 'last_name', 'percent']
    _section("TOP PERFORMERS")
    print(_table(report['top_performers'], performer_columns, ['percent']))
    _section("BOTTOM PERFORMERS")
    print(_table(report['bottom_performers'], performer_columns, ['percent']))


def show_class_monthly_report(report: Dict) -> None:
    """Print a class monthly report."""
    summary = report['summary']
    latest_exam = report['latest_exam']

    print("\n" + "="*70)
    print(f"CLASS {report['class']['name']} - {report['month']}")
    print("="*70)

    _section("SUMMARY")
    print(f"Latest exam:        {latest_exam['name'] if latest_exam else NO_DATA}")
    print(f"Average attendance: {format_percent(summary['average_attendance'])}")
    print(f"Average marks:      {format_percent(summary['average_marks'])}")
    print(f"Correlation:        {format_number(summary['correlation'])}")
    print("Risk counts:        " + ", ".join(
        f"{level}={count}" for level, count in summary['risk_counts'].items()
    ))

    _section("ATTENDANCE TREND")
    print(_table(report['attendance_trend'], ['date', 'present_rate'], ['present_rate']))

    _section("SUBJECT AVERAGES")
    print(_table(report['subject_averages'], ['subject_name', 'avg_percent'], ['avg_percent']))

    _section("MARKS DISTRIBUTION")
    print(_table(report['marks_distribution'], ['label', 'count']))

    _section("STUDENT PERFORMANCE")
    print(_table(
        report['student_performance'],
        ['roll_no', 'first_name', 'last_name', 'attendance_rate', 'marks_percent',
         'performance_score', 'risk_level', 'missing_marks'],
        ['attendance_rate', 'marks_percent', 'performance_score']
    ))


def show_student_report(report: Dict) -> None:
    """Print a student report."""
    student = report['student']
    attendance = report['attendance']
    marks = report['marks']
    trend = report['trend']
    roll_no = NO_DATA if student['roll_no'] is None else student['roll_no']

    print("\n" + "="*70)
    print(f"STUDENT {student['first_name']} {student['last_name'] or ''} "
          f"({student['class_name'] or NO_DATA}, roll {roll_no})")
    print("="*70)

    _section("ATTENDANCE")
    print(f"Sessions: {attendance['total']}  present={attendance['present']} "
          f"absent={attendance['absent']} late={attendance['late']} excused={attendance['excused']}")
    print(f"Rate:     {format_percent(attendance['rate'])}")

    _section("EXAMS")
    print(f"Overall:     {format_percent(marks['overall_percent'])}")
    print(f"Trend:       {trend['direction']} ({format_percent(trend['delta'])})")
    print(f"Correlation: {format_number(report['correlation'])}")
    print(_table(
        marks['exams'],
        ['exam_name', 'start_date', 'obtained_total', 'max_total', 'percent',
         'absent_count', 'missing_count'],
        ['percent']
    ))

    _section("SUBJECTS")
    print(_table(marks['subjects'], ['subject_name', 'obtained_total', 'max_total', 'avg_percent'],
                 ['avg_percent']))
    print("\nStrengths: " + (", ".join(s['subject_name'] for s in marks['strengths']) or NO_DATA))
    print("Gaps:      " + (", ".join(s['subject_name'] for s in marks['gaps']) or NO_DATA))

    if marks['absent_exams']:
        _section("ABSENT")
        print(_table(marks['absent_exams'], ['exam_name', 'subject_name']))


def show_attendance_alerts(alerts: List[Dict]) -> None:
    """Print students below the attendance threshold."""
    _section("LOW ATTENDANCE")
    print(_table(alerts, ['roll_no', 'first_name', 'last_name', 'present_rate'], ['present_rate']))
