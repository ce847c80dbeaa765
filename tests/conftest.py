"""
Shared fixtures: a small school written as source files and loaded into a
temporary DuckDB warehouse.
"""

import json

import pytest


CLASSES_CSV = """id,name,grade,section
1,Grade 8A,8,A
2,Grade 8B,8,B"""

SUBJECTS_CSV = """id,name,code
10,Mathematics,MATH
11,Science,SCI
12,French,FRE"""

CLASS_SUBJECTS_CSV = """class_id,subject_id,is_optional
1,10,false
1,11,false
1,12,true"""

STUDENTS_CSV = """id,first_name,last_name,roll_no,class_id,status
101,Asha,Rao,1,1,active
102,Ben,Cole,2,1,active
103,Chen,Li,3,1,active
104,Dina,Shah,4,1,active
105,Eli,Moss,5,1,inactive"""

STUDENT_SUBJECTS_CSV = """student_id,class_id,subject_id,is_enrolled
103,1,12,false"""

ATTENDANCE_CSV = """id,date,class_id,subject_id,student_id,status
1,2025-01-06,1,,101,present
2,2025-01-06,1,,102,absent
3,2025-01-06,1,,103,present
4,2025-01-06,1,,104,late
5,2025-01-07,1,,101,present
6,2025-01-07,1,,102,present
7,2025-01-07,1,,103,excused
8,2025-01-07,1,,104,present
9,2025-02-10,1,,101,present
10,2025-02-10,1,,102,absent
11,2025-02-10,1,,103,absent
12,2025-02-10,1,,104,present
13,2025-02-11,1,,101,holiday"""

EXAMS = [
    {"id": 1, "name": "Unit Test 1", "exam_type": "Unit", "start_date": "2025-01-15", "end_date": "2025-01-16"},
    {"id": 2, "name": "Mid Term", "exam_type": "Mid", "start_date": "2025-02-20", "end_date": "2025-02-25"},
    {"id": 3, "name": "Lab Practical", "exam_type": "Practical", "start_date": None, "end_date": None},
]


def _mark(mark_id, exam_id, subject_id, student_id, max_marks, obtained, is_absent=False):
    return {
        "id": mark_id,
        "exam_id": exam_id,
        "class_id": 1,
        "subject_id": subject_id,
        "student_id": student_id,
        "max_marks": max_marks,
        "marks_obtained": obtained,
        "is_absent": is_absent,
    }


MARKS = [
    # Unit Test 1: Ben fully absent, Chen missing Science, Dina has no entries
    _mark(1, 1, 10, 101, 50, 40),
    _mark(2, 1, 11, 101, 50, 45),
    _mark(3, 1, 12, 101, 20, 18),
    _mark(4, 1, 10, 102, 50, None, True),
    _mark(5, 1, 11, 102, 50, None, True),
    _mark(6, 1, 12, 102, 20, None, True),
    _mark(7, 1, 10, 103, 50, 20),
    _mark(8, 1, 11, 103, 50, None),
    # Mid Term
    _mark(9, 2, 10, 101, 50, 45),
    _mark(10, 2, 11, 101, 50, 40),
    _mark(11, 2, 10, 102, 50, 30),
    _mark(12, 2, 11, 102, 50, 25),
    _mark(13, 2, 10, 103, 50, 10),
    _mark(14, 2, 11, 103, 50, 15),
    # Lab Practical, undated
    _mark(15, 3, 10, 101, 25, 20),
]


def write_sources(data_dir, **files):
    """Write source files into data_dir; lists/dicts are dumped as JSON."""
    data_dir.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        file_name = name.replace('_json', '.json').replace('_csv', '.csv')
        if not isinstance(content, str):
            content = json.dumps(content)
        (data_dir / file_name).write_text(content)
    return data_dir


@pytest.fixture
def temp_db(tmp_path):
    """Path of a temporary warehouse database."""
    return tmp_path / "test_warehouse.duckdb"


@pytest.fixture
def sample_data_dir(tmp_path):
    """Create sample source files for testing."""
    return write_sources(
        tmp_path / "raw",
        classes_csv=CLASSES_CSV,
        subjects_csv=SUBJECTS_CSV,
        class_subjects_csv=CLASS_SUBJECTS_CSV,
        students_csv=STUDENTS_CSV,
        student_subjects_csv=STUDENT_SUBJECTS_CSV,
        attendance_csv=ATTENDANCE_CSV,
        exams_json=EXAMS,
        marks_json=MARKS,
    )


@pytest.fixture
def store(temp_db, sample_data_dir):
    """A DuckDBStore over the loaded sample school."""
    from school_analytics.main import load_directory
    from school_analytics.store import DuckDBStore

    load_directory(sample_data_dir, temp_db)
    return DuckDBStore(temp_db)
