"""
Tests for the class exam and class monthly reports
"""

from datetime import date

import pytest

from conftest import write_sources
from school_analytics.analytics import (
    class_attendance_alerts,
    class_attendance_trend,
    class_exam_report,
    class_monthly_report,
)


def _counts(distribution):
    return {row['label']: row['count'] for row in distribution}


def test_class_exam_report_summary(store):
    report = class_exam_report(store, 1, 1)
    summary = report['summary']

    assert report['class']['name'] == 'Grade 8A'
    assert report['exam']['name'] == 'Unit Test 1'
    assert report['subject'] is None

    # Asha 103/120, Chen 20/50 (Science missing), Ben fully absent, Dina no entries
    assert summary['total_students'] == 4
    assert summary['average_percent'] == pytest.approx((103 / 120 + 0.4) / 2)
    assert summary['highest_percent'] == pytest.approx(103 / 120)
    assert summary['lowest_percent'] == pytest.approx(0.4)
    assert summary['pass_count'] == 2
    assert summary['fail_count'] == 0
    assert summary['absent_count'] == 1
    assert summary['missing_count'] == 1


def test_class_exam_report_excludes_inactive_students(store):
    report = class_exam_report(store, 1, 1)
    assert 105 not in [row['student_id'] for row in report['students']]


def test_class_exam_report_absent_student(store):
    report = class_exam_report(store, 1, 1)
    ben = next(row for row in report['students'] if row['student_id'] == 102)

    assert ben['is_absent'] is True
    assert ben['percent'] is None
    assert ben['max_total'] == 120
    assert ben['obtained_total'] == 0


def test_class_exam_report_distribution(store):
    counts = _counts(class_exam_report(store, 1, 1)['distribution'])

    assert counts['75-90%'] == 1
    assert counts['40-60%'] == 1
    assert counts['No data'] == 2
    assert sum(counts.values()) == 4


def test_class_exam_report_performers(store):
    report = class_exam_report(store, 1, 1)

    assert [row['student_id'] for row in report['top_performers']] == [101, 103]
    assert [row['student_id'] for row in report['bottom_performers']] == [103, 101]


def test_class_exam_report_subject_breakdown(store):
    breakdown = class_exam_report(store, 1, 1)['subject_breakdown']

    assert [row['subject_name'] for row in breakdown] == ['French', 'Mathematics', 'Science']
    averages = {row['subject_name']: row['avg_percent'] for row in breakdown}
    assert averages['French'] == pytest.approx(0.9)
    assert averages['Mathematics'] == pytest.approx((0.8 + 0.4) / 2)
    assert averages['Science'] == pytest.approx(0.9)


def test_class_exam_report_single_subject(store):
    report = class_exam_report(store, 1, 1, subject_id=10)

    assert report['subject']['name'] == 'Mathematics'
    assert report['subject_breakdown'] == []
    assert report['summary']['total_students'] == 4
    assert report['summary']['average_percent'] == pytest.approx(0.6)


def test_class_exam_report_optional_subject_excludes_opted_out(store):
    report = class_exam_report(store, 1, 1, subject_id=12)
    summary = report['summary']

    # Chen opted out of French and is not counted at all
    assert 103 not in [row['student_id'] for row in report['students']]
    assert summary['total_students'] == 3
    assert summary['average_percent'] == pytest.approx(0.9)
    assert summary['absent_count'] == 1
    assert summary['missing_count'] == 1


def test_class_exam_report_not_found(store):
    assert class_exam_report(store, 99, 1) is None
    assert class_exam_report(store, 1, 99) is None


def test_class_exam_report_empty_class(store):
    report = class_exam_report(store, 2, 1)

    assert report is not None
    assert report['summary']['total_students'] == 0
    assert report['summary']['average_percent'] is None
    assert report['summary']['highest_percent'] is None
    assert report['top_performers'] == []
    assert 'No data' not in _counts(report['distribution'])


def test_three_student_scenario(temp_db, tmp_path):
    """A scored 80/100, B absent, C without an entry."""
    from school_analytics.main import load_directory
    from school_analytics.store import DuckDBStore

    data_dir = write_sources(
        tmp_path / "scenario",
        classes_csv="id,name\n1,Class 1",
        subjects_csv="id,name\n1,English",
        students_csv="id,first_name,last_name,roll_no,class_id\n1,A,A,1,1\n2,B,B,2,1\n3,C,C,3,1",
        exams_json=[{"id": 1, "name": "Final", "start_date": "2025-03-01"}],
        marks_json=[
            {"id": 1, "exam_id": 1, "class_id": 1, "subject_id": 1, "student_id": 1,
             "max_marks": 100, "marks_obtained": 80, "is_absent": False},
            {"id": 2, "exam_id": 1, "class_id": 1, "subject_id": 1, "student_id": 2,
             "max_marks": 100, "marks_obtained": None, "is_absent": True},
        ],
    )
    load_directory(data_dir, temp_db)

    report = class_exam_report(DuckDBStore(temp_db), 1, 1)
    summary = report['summary']

    assert summary['average_percent'] == pytest.approx(0.8)
    assert summary['highest_percent'] == pytest.approx(0.8)
    assert summary['lowest_percent'] == pytest.approx(0.8)
    assert summary['pass_count'] == 1
    assert summary['fail_count'] == 0
    assert summary['absent_count'] == 1
    assert summary['missing_count'] == 1
    assert summary['total_students'] == 3

    counts = _counts(report['distribution'])
    assert counts['75-90%'] == 1
    assert counts['90-100%'] == 0
    assert counts['No data'] == 2


def test_class_attendance_trend(store):
    trend = class_attendance_trend(store, 1, '2025-01')

    assert [row['date'] for row in trend] == [date(2025, 1, 6), date(2025, 1, 7)]
    assert trend[0]['present_rate'] == pytest.approx(0.5)
    assert trend[1]['present_rate'] == pytest.approx(0.75)


def test_class_attendance_trend_without_sessions(store):
    assert class_attendance_trend(store, 1, '2025-03') == []


def test_class_attendance_trend_rejects_bad_month(store):
    with pytest.raises(ValueError):
        class_attendance_trend(store, 1, '2025-13')
    with pytest.raises(ValueError):
        class_attendance_trend(store, 1, 'January')


def test_class_monthly_report(store):
    report = class_monthly_report(store, 1, '2025-01')
    summary = report['summary']

    # Mid Term is the latest dated exam; the undated practical sorts last
    assert report['latest_exam']['id'] == 2
    assert report['month'] == '2025-01'
    assert len(report['attendance_trend']) == 2

    assert summary['average_marks'] == pytest.approx((0.85 + 0.55 + 0.25) / 3)
    assert summary['average_attendance'] == pytest.approx((1 + 1 / 3 + 1 / 3 + 2 / 3) / 4)
    assert summary['risk_counts'] == {'low': 1, 'medium': 0, 'high': 3, 'unknown': 0}
    assert summary['correlation'] is not None
    assert 0 < summary['correlation'] <= 1


def test_class_monthly_report_student_performance(store):
    report = class_monthly_report(store, 1, '2025-01')
    performance = {row['student_id']: row for row in report['student_performance']}

    assert list(performance) == [101, 102, 103, 104]

    asha = performance[101]
    assert asha['attendance_rate'] == pytest.approx(1.0)
    assert asha['marks_percent'] == pytest.approx(0.85)
    assert asha['performance_score'] == pytest.approx(0.4 * 1.0 + 0.6 * 0.85)
    assert asha['risk_level'] == 'low'

    # No Mid Term marks: the score falls back to attendance alone
    dina = performance[104]
    assert dina['marks_percent'] is None
    assert dina['performance_score'] == pytest.approx(2 / 3)
    assert dina['risk_level'] == 'high'


def test_class_monthly_report_subject_averages_and_distribution(store):
    report = class_monthly_report(store, 1, '2025-01')

    averages = {row['subject_name']: row['avg_percent'] for row in report['subject_averages']}
    assert averages['Mathematics'] == pytest.approx((0.9 + 0.6 + 0.2) / 3)
    assert averages['Science'] == pytest.approx((0.8 + 0.5 + 0.3) / 3)

    counts = _counts(report['marks_distribution'])
    assert counts['<40%'] == 1
    assert counts['40-60%'] == 1
    assert counts['75-90%'] == 1
    assert counts['No data'] == 1


def test_class_monthly_report_empty_class(store):
    report = class_monthly_report(store, 2, '2025-01')

    assert report['latest_exam'] is None
    assert report['student_performance'] == []
    assert report['subject_averages'] == []
    assert report['summary']['correlation'] is None
    assert report['summary']['average_marks'] is None
    assert report['summary']['risk_counts'] == {'low': 0, 'medium': 0, 'high': 0, 'unknown': 0}


def test_class_monthly_report_not_found(store):
    assert class_monthly_report(store, 99, '2025-01') is None


def test_class_attendance_alerts(store):
    alerts = class_attendance_alerts(store, 1)

    assert [row['student_id'] for row in alerts] == [102, 103, 104]
    assert alerts[0]['present_rate'] == pytest.approx(1 / 3)
    assert alerts[0]['class_name'] == 'Grade 8A'


def test_class_attendance_alerts_not_found(store):
    assert class_attendance_alerts(store, 99) is None


def _load_single_class(tmp_path, temp_db, students, exams, marks):
    from school_analytics.main import load_directory
    from school_analytics.store import DuckDBStore

    roster = "\n".join(
        f"{student_id},S{student_id},L{student_id},{roll_no},1"
        for student_id, roll_no in students
    )
    data_dir = write_sources(
        tmp_path / "single_class",
        classes_csv="id,name\n1,Class 1",
        subjects_csv="id,name\n1,English",
        students_csv="id,first_name,last_name,roll_no,class_id\n" + roster,
        exams_json=exams,
        marks_json=[
            {"id": mark_id, "exam_id": exam_id, "class_id": 1, "subject_id": 1,
             "student_id": student_id, "max_marks": 100, "marks_obtained": obtained,
             "is_absent": False}
            for mark_id, (exam_id, student_id, obtained) in enumerate(marks, start=1)
        ],
    )
    load_directory(data_dir, temp_db)
    return DuckDBStore(temp_db)


def test_class_exam_report_performers_truncated_and_stable(temp_db, tmp_path):
    # Seven students in roll order; odd rolls score 50, even rolls 70
    students = [(roll_no, roll_no) for roll_no in range(1, 8)]
    marks = [(1, roll_no, 70 if roll_no % 2 == 0 else 50) for roll_no in range(1, 8)]
    store = _load_single_class(
        tmp_path, temp_db, students,
        exams=[{"id": 1, "name": "Final", "start_date": "2025-03-01"}],
        marks=marks,
    )

    report = class_exam_report(store, 1, 1)

    assert report['summary']['total_students'] == 7
    assert [row['student_id'] for row in report['top_performers']] == [2, 4, 6, 1, 3]
    assert [row['student_id'] for row in report['bottom_performers']] == [1, 3, 5, 7, 2]


def test_class_monthly_report_latest_exam_same_start_date(temp_db, tmp_path):
    store = _load_single_class(
        tmp_path, temp_db, students=[(1, 1)],
        exams=[
            {"id": 1, "name": "Paper A", "start_date": "2025-03-01"},
            {"id": 2, "name": "Paper B", "start_date": "2025-03-01"},
        ],
        marks=[(1, 1, 40), (2, 1, 90)],
    )

    report = class_monthly_report(store, 1, '2025-03')

    assert report['latest_exam']['id'] == 2
    assert report['student_performance'][0]['marks_percent'] == pytest.approx(0.9)
