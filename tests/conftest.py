"""
Pytest Configuration and Fixtures

Provides common fixtures for all tests including:
- A small school (three courses, two levels) as pandas DataFrames
- A DataFrameGradeStore over that school
- Grade record factories
- Images for logo/footer tests
"""

import io
import sys
from pathlib import Path

import pandas as pd
import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from report_card_builder.config import InstitutionConfig
from report_card_builder.core.models import Course, GradeRecord, Student, Subject
from report_card_builder.store.dataframe import DataFrameGradeStore


def grade(student_id, subject_code, period, score):
    """Shorthand GradeRecord factory"""
    return GradeRecord(student_id=student_id, subject_code=subject_code, period=period, score=score)


@pytest.fixture
def make_grade():
    return grade


@pytest.fixture
def courses_df():
    return pd.DataFrame(
        [
            {"code": "1P", "display_name": "Primero de Primaria", "level": "Primaria"},
            {"code": "2P", "display_name": "Segundo de Primaria", "level": "Primaria"},
            {"code": "1S", "display_name": "Primero de Secundaria", "level": "Secundaria"},
        ]
    )


@pytest.fixture
def areas_df():
    return pd.DataFrame(
        [
            {"id": "1", "name": "Matemática"},
            {"id": "2", "name": "Comunicación y Lenguajes"},
            {"id": "3", "name": "Ciencias Naturales"},
        ]
    )


@pytest.fixture
def subjects_df():
    rows = [
        ("MAT", "Mat", "Matemática", "1P", "1", 1),
        ("LEN", "Len", "Lenguaje", "1P", "2", 2),
        ("ING", "Ing", "Inglés", "1P", "2", 3),
        ("BIO", "Bio", "Biología", "1P", "3", 4),
        ("MAT2", "Mat", "Matemática", "2P", "1", 1),
        ("LEN2", "Len", "Lenguaje", "2P", "2", 2),
        ("MAT3", "Mat", "Matemática", "1S", "1", 1),
        ("FIS3", "Fís", "Física", "1S", "3", 2),
    ]
    return pd.DataFrame(
        rows, columns=["code", "short_name", "display_name", "course_code", "area_id", "display_order"]
    )


@pytest.fixture
def students_df():
    rows = [
        ("101", "Ana", "Peña", "1P", True),
        ("102", "Luis", "Pena", "1P", True),
        ("103", "Marta", "Quispe", "1P", True),
        ("104", "Jorge", "Mamani", "1P", True),
        ("105", "Rosa", "PEÑA", "1P", False),
        ("201", "Carla", "PEÑA", "2P", True),
        ("202", "Diego", "Rojas", "2P", True),
        ("301", "Elena", "Rojas", "1S", True),
        ("302", "Franco", "Rojas", "1S", True),
    ]
    return pd.DataFrame(rows, columns=["id", "given_names", "surname", "course_code", "active"])


@pytest.fixture
def grades_df():
    rows = [
        ("101", "MAT", 1, 90), ("101", "MAT", 2, 80), ("101", "LEN", 1, 70),
        ("101", "ING", 1, 80), ("101", "BIO", 1, 60),
        ("102", "MAT", 1, 50), ("102", "LEN", 1, 49), ("102", "ING", 1, 51), ("102", "BIO", 1, 40),
        ("103", "MAT", 1, 95), ("103", "LEN", 1, 85), ("103", "ING", 1, 90), ("103", "BIO", 1, 100),
        ("201", "MAT2", 1, 70), ("201", "LEN2", 1, 72),
        ("202", "MAT2", 1, 88), ("202", "LEN2", 1, 90),
        ("301", "MAT3", 1, 60), ("301", "FIS3", 1, 62),
        ("302", "MAT3", 1, 75), ("302", "FIS3", 1, 80),
    ]
    return pd.DataFrame(rows, columns=["student_id", "subject_code", "period", "score"])


@pytest.fixture
def grouping_rules_df():
    return pd.DataFrame(
        [
            {"area_id": "2", "group_name": "COM", "display_label": "Comunicación y Lenguajes",
             "subject_code": "LEN", "course_code": "1P"},
            {"area_id": "2", "group_name": "COM", "display_label": "Comunicación y Lenguajes",
             "subject_code": "ING", "course_code": "1P"},
        ]
    )


@pytest.fixture
def store(students_df, courses_df, subjects_df, grades_df, grouping_rules_df, areas_df):
    """DataFrame-backed store over the sample school"""
    return DataFrameGradeStore(
        students=students_df,
        courses=courses_df,
        subjects=subjects_df,
        grades=grades_df,
        grouping_rules=grouping_rules_df,
        areas=areas_df,
    )


@pytest.fixture
def csv_dir(tmp_path, students_df, courses_df, subjects_df, grades_df, grouping_rules_df, areas_df):
    """The sample school written as CSV exports"""
    students_df.to_csv(tmp_path / "students.csv", index=False)
    courses_df.to_csv(tmp_path / "courses.csv", index=False)
    subjects_df.to_csv(tmp_path / "subjects.csv", index=False)
    grades_df.to_csv(tmp_path / "grades.csv", index=False)
    grouping_rules_df.to_csv(tmp_path / "grouping_rules.csv", index=False)
    areas_df.to_csv(tmp_path / "areas.csv", index=False)
    return tmp_path


@pytest.fixture
def config(tmp_path):
    return InstitutionConfig(institution_name="U.E. de Prueba", output_dir=tmp_path / "output")


@pytest.fixture
def students():
    return [
        Student(id="1", given_names="Ana", surname="Peña", course_code="1P"),
        Student(id="2", given_names="Luis", surname="Pena", course_code="1P"),
        Student(id="3", given_names="Marta", surname="Quispe", course_code="2P"),
        Student(id="4", given_names="Jorge", surname="Mamani", course_code="2P"),
        Student(id="5", given_names="Elena", surname="Rojas", course_code="1S"),
    ]


@pytest.fixture
def courses():
    return [
        Course(code="1S", display_name="Primero de Secundaria", level="Secundaria"),
        Course(code="1P", display_name="Primero de Primaria", level="Primaria"),
        Course(code="2P", display_name="Segundo de Primaria", level="Primaria"),
    ]


@pytest.fixture
def subjects():
    return [
        Subject(code="MAT", short_name="Mat", display_name="Matemática", course_code="1P", area_id="1", display_order=1),
        Subject(code="LEN", short_name="Len", display_name="Lenguaje", course_code="1P", area_id="2", display_order=2),
        Subject(code="ING", short_name="Ing", display_name="Inglés", course_code="1P", area_id="2", display_order=3),
        Subject(code="BIO", short_name="Bio", display_name="Biología", course_code="1P", area_id="3", display_order=4),
    ]


def png_bytes(width=200, height=100, color=(200, 30, 30)):
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_png():
    """PNG bytes factory: make_png(width, height)"""
    return png_bytes


@pytest.fixture
def logo_path(tmp_path):
    path = tmp_path / "logo.png"
    path.write_bytes(png_bytes(200, 100))
    return path


@pytest.fixture
def weasyprint():
    """WeasyPrint module, or skip when its system libraries are missing"""
    try:
        import weasyprint as module
    except (ImportError, OSError) as e:
        pytest.skip(f"WeasyPrint unavailable: {e}")
    return module
