"""
Marks aggregation.

Every marks entry resolves to exactly one outcome:

    SCORED   marks recorded; counts toward obtained and max totals
    ABSENT   student absent; charged 0 out of the entry's max
    MISSING  no marks and not absent; excluded from both totals

Totals and percents are built from those outcomes in Python rather than
inside SQL so the absent/missing rules stay in one place.
"""

import logging
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..store import DateLike
from .primitives import average, bucket_distribution, is_missing, is_pass, percent

logger = logging.getLogger(__name__)

TOP_PERFORMERS_LIMIT = 5
STRENGTHS_LIMIT = 3


class EntryOutcome(Enum):
    SCORED = 'scored'
    ABSENT = 'absent'
    MISSING = 'missing'


def classify_entry(entry: Dict) -> EntryOutcome:
    if entry['is_absent']:
        return EntryOutcome.ABSENT
    if is_missing(entry['marks_obtained']):
        return EntryOutcome.MISSING
    return EntryOutcome.SCORED


def entry_percent(entry: Dict) -> Optional[float]:
    """Percent of a single entry; None unless the entry is scored."""
    if classify_entry(entry) is not EntryOutcome.SCORED:
        return None
    return percent(entry['marks_obtained'], entry['max_marks'])


def tally_entries(entries: Iterable[Dict]) -> Dict:
    """
    Accumulate obtained/max totals over a group of entries.

    is_absent is True when the group has entries and every one of them is
    marked absent.
    """
    totals = {
        'entry_count': 0,
        'obtained_total': 0.0,
        'max_total': 0.0,
        'absent_count': 0,
        'missing_count': 0,
    }
    for entry in entries:
        totals['entry_count'] += 1
        outcome = classify_entry(entry)
        if outcome is EntryOutcome.ABSENT:
            totals['absent_count'] += 1
            totals['max_total'] += entry['max_marks']
        elif outcome is EntryOutcome.SCORED:
            totals['obtained_total'] += entry['marks_obtained']
            totals['max_total'] += entry['max_marks']
        else:
            totals['missing_count'] += 1

    totals['percent'] = percent(totals['obtained_total'], totals['max_total'])
    totals['is_absent'] = (
        totals['entry_count'] > 0 and totals['absent_count'] == totals['entry_count']
    )
    return totals


def group_by(entries: Iterable[Dict], key: str) -> Dict[int, List[Dict]]:
    groups: Dict[int, List[Dict]] = {}
    for entry in entries:
        groups.setdefault(entry[key], []).append(entry)
    return groups


def subject_averages(entries: Iterable[Dict]) -> List[Dict]:
    """Average per-entry percent for each subject, ordered by subject name."""
    groups = group_by(entries, 'subject_id')
    rows = [
        {
            'subject_id': subject_id,
            'subject_name': subject_entries[0]['subject_name'],
            'avg_percent': average(entry_percent(entry) for entry in subject_entries),
        }
        for subject_id, subject_entries in groups.items()
    ]
    rows.sort(key=lambda row: (row['subject_name'] or '', row['subject_id']))
    return rows


def _student_row(student: Dict, totals: Dict) -> Dict:
    return {
        'student_id': student['id'],
        'first_name': student['first_name'],
        'last_name': student['last_name'],
        'roll_no': student['roll_no'],
        'entry_count': totals['entry_count'],
        'max_total': totals['max_total'],
        'obtained_total': totals['obtained_total'],
        'absent_count': totals['absent_count'],
        'missing_count': totals['missing_count'],
        # Fully absent students carry no percent
        'percent': None if totals['is_absent'] else totals['percent'],
        'is_absent': totals['is_absent'],
    }


def class_exam_report(
    store,
    class_id: int,
    exam_id: int,
    subject_id: Optional[int] = None
) -> Optional[Dict]:
    """
    Exam results of a class, optionally narrowed to one subject.

    Returns None when the class or the exam does not exist.
    """
    class_row = store.fetch_class(class_id)
    exam_row = store.fetch_exam(exam_id)
    if class_row is None or exam_row is None:
        return None

    subject_row = store.fetch_subject(subject_id) if subject_id is not None else None

    students = store.fetch_active_students(class_id)
    if subject_id is not None:
        flag = store.fetch_class_subject_optional_flag(class_id, subject_id)
        if flag and flag['is_optional']:
            opted_out = flag['opted_out_student_ids']
            students = [student for student in students if student['id'] not in opted_out]

    entries = store.fetch_marks_entries(exam_id=exam_id, class_id=class_id, subject_id=subject_id)
    entries_by_student = group_by(entries, 'student_id')

    rows = [
        _student_row(student, tally_entries(entries_by_student.get(student['id'], [])))
        for student in students
    ]

    scored = [row for row in rows if row['percent'] is not None and not row['is_absent']]
    percents = [row['percent'] for row in scored]

    top_performers = sorted(scored, key=lambda row: row['percent'], reverse=True)
    bottom_performers = sorted(scored, key=lambda row: row['percent'])

    summary = {
        'average_percent': average(percents),
        'highest_percent': max(percents) if percents else None,
        'lowest_percent': min(percents) if percents else None,
        'pass_count': sum(1 for value in percents if is_pass(value)),
        'fail_count': sum(1 for value in percents if not is_pass(value)),
        'absent_count': sum(1 for row in rows if row['is_absent']),
        'missing_count': sum(1 for row in rows if row['entry_count'] == 0),
        'total_students': len(rows),
    }
    logger.debug(
        "Class %s exam %s subject %s: %d students, %d scored",
        class_id, exam_id, subject_id, len(rows), len(scored)
    )

    return {
        'class': class_row,
        'exam': exam_row,
        'subject': subject_row,
        'summary': summary,
        'distribution': bucket_distribution(row['percent'] for row in rows),
        'subject_breakdown': [] if subject_id is not None else subject_averages(entries),
        'top_performers': top_performers[:TOP_PERFORMERS_LIMIT],
        'bottom_performers': bottom_performers[:TOP_PERFORMERS_LIMIT],
        'students': rows,
    }


def _exam_sort_key(exam: Dict):
    start = exam['start_date']
    return (start is None, start or date.min, exam['exam_id'])


def overall_percent(exam_rows: Iterable[Dict]) -> Optional[float]:
    """Mean of the exam rows' percents (an average of percents, not of totals)."""
    return average(row['percent'] for row in exam_rows)


def student_marks_timeline(
    store,
    student_id: int,
    start_date: DateLike = None,
    end_date: DateLike = None
) -> Dict:
    """
    Exam-by-exam and subject-by-subject marks for one student.

    Date bounds apply to exam start dates. Exam rows are chronological with
    undated exams last. Strengths and gaps rank only subjects that have a
    percent; a subject whose entries are all missing is left out rather
    than ranked as 0.
    """
    entries = store.fetch_marks_entries(
        student_id=student_id, start_date=start_date, end_date=end_date
    )

    exams = []
    for exam_id, exam_entries in group_by(entries, 'exam_id').items():
        totals = tally_entries(exam_entries)
        exams.append({
            'exam_id': exam_id,
            'exam_name': exam_entries[0]['exam_name'],
            'start_date': exam_entries[0]['exam_start_date'],
            'max_total': totals['max_total'],
            'obtained_total': totals['obtained_total'],
            'absent_count': totals['absent_count'],
            'missing_count': totals['missing_count'],
            'percent': totals['percent'],
        })
    exams.sort(key=_exam_sort_key)

    subjects = []
    for subject_id, subject_entries in group_by(entries, 'subject_id').items():
        totals = tally_entries(subject_entries)
        subjects.append({
            'subject_id': subject_id,
            'subject_name': subject_entries[0]['subject_name'],
            'max_total': totals['max_total'],
            'obtained_total': totals['obtained_total'],
            'avg_percent': totals['percent'],
        })
    subjects.sort(key=lambda row: (row['subject_name'] or '', row['subject_id']))

    ranked = [row for row in subjects if row['avg_percent'] is not None]
    strengths = sorted(ranked, key=lambda row: row['avg_percent'], reverse=True)
    gaps = sorted(ranked, key=lambda row: row['avg_percent'])

    absent_exams = [
        {
            'exam_id': entry['exam_id'],
            'exam_name': entry['exam_name'],
            'subject_id': entry['subject_id'],
            'subject_name': entry['subject_name'],
        }
        for entry in entries
        if classify_entry(entry) is EntryOutcome.ABSENT
    ]

    return {
        'overall_percent': overall_percent(exams),
        'exams': exams,
        'subjects': subjects,
        'strengths': strengths[:STRENGTHS_LIMIT],
        'gaps': gaps[:STRENGTHS_LIMIT],
        'absent_exams': absent_exams,
    }
