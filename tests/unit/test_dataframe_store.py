"""
Unit Tests for the pandas Grade Store

Tests for:
- Student ordering and the active filter
- Page ceiling on grade reads
- Spanish column names from the school export
- CSV directory loading
"""

import pandas as pd
import pytest

from report_card_builder.exceptions import GradeStoreError
from report_card_builder.store import DataFrameGradeStore


class TestSelectStudents:
    """Tests for select_students()"""

    def test_sorted_by_surname_then_names(self, store):
        ids = [s.id for s in store.select_students("1P")]
        # Mamani, Pena, Peña, Quispe
        assert ids == ["104", "102", "101", "103"]

    def test_inactive_filtered(self, store):
        assert "105" not in [s.id for s in store.select_students("1P")]
        assert "105" in [s.id for s in store.select_students("1P", active_only=False)]

    def test_all_courses(self, store):
        assert len(store.select_students()) == 8


class TestSelectGrades:
    """Tests for select_grades()"""

    def test_filters(self, store):
        records = store.select_grades(student_ids=["101"], subject_codes=["MAT"])
        assert sorted(r.period for r in records) == [1, 2]

        records = store.select_grades(student_ids=["101"], period=2)
        assert [r.score for r in records] == [80.0]

    def test_page_ceiling(self, students_df, courses_df, subjects_df, grades_df):
        store = DataFrameGradeStore(students_df, courses_df, subjects_df, grades_df, max_page_size=4)

        assert len(store.select_grades(limit=100)) == 4
        assert len(store.select_grades(limit=2)) == 2
        assert len(store.select_grades(offset=20, limit=4)) == 1

    def test_unusable_rows_dropped(self, students_df, courses_df, subjects_df, caplog):
        grades = pd.DataFrame(
            [("101", "MAT", 1, "85"), ("101", "LEN", 1, "n/a"), ("101", "ING", 4, "70")],
            columns=["student_id", "subject_code", "period", "score"],
        )
        store = DataFrameGradeStore(students_df, courses_df, subjects_df, grades)

        assert [r.subject_code for r in store.select_grades()] == ["MAT"]
        assert "Dropped 2 grade rows" in caplog.text


class TestCatalogues:
    """Tests for courses, subjects, areas and grouping rules"""

    def test_subjects_of_course(self, store):
        subjects = store.select_subjects("1P")
        assert [s.code for s in subjects] == ["MAT", "LEN", "ING", "BIO"]
        assert subjects[1].area_id == "2"
        assert subjects[1].display_order == 2

    def test_get_course(self, store):
        assert store.get_course("2P").display_name == "Segundo de Primaria"
        assert store.get_course("9Z") is None

    def test_grouping_rules(self, store):
        rules = store.select_grouping_rules("1P")
        assert len(rules) == 1
        assert rules[0].member_subject_codes == ["LEN", "ING"]
        assert store.select_grouping_rules("2P") == []

    def test_areas(self, store):
        assert [a.name for a in store.select_areas()][0] == "Matemática"

    def test_optional_tables(self, students_df, courses_df, subjects_df, grades_df):
        store = DataFrameGradeStore(students_df, courses_df, subjects_df, grades_df)
        assert store.select_grouping_rules("1P") == []
        assert store.select_areas() == []


class TestSpanishColumns:
    """Tests for the school database column names"""

    def test_aliases(self, courses_df, subjects_df):
        students = pd.DataFrame(
            [{"cod_moodle": 7, "nombres": "Ana", "apellidos": "Peña", "curso_corto": "1P", "activo": "sí"}]
        )
        grades = pd.DataFrame([{"alumno_id": 7, "materia_codigo": "MAT", "trimestre": 1, "nota": 88}])

        store = DataFrameGradeStore(students, courses_df, subjects_df, grades)

        assert store.select_students("1P")[0].full_name == "Peña, Ana"
        assert store.select_grades(["7"])[0].score == 88.0

    def test_missing_column(self, courses_df, subjects_df, grades_df):
        students = pd.DataFrame([{"id": "1", "given_names": "Ana"}])
        with pytest.raises(GradeStoreError) as exc_info:
            DataFrameGradeStore(students, courses_df, subjects_df, grades_df)
        assert "surname" in exc_info.value.detail


class TestFromCsvDir:
    """Tests for loading CSV exports"""

    def test_round_trip(self, csv_dir):
        store = DataFrameGradeStore.from_csv_dir(csv_dir)

        assert [s.id for s in store.select_students("1P")] == ["104", "102", "101", "103"]
        assert store.select_subjects("1P")[0].display_order == 1
        assert len(store.select_grouping_rules("1P")) == 1
        assert len(store.select_grades(["101"])) == 5

    def test_optional_files_may_be_missing(self, csv_dir):
        (csv_dir / "areas.csv").unlink()
        (csv_dir / "grouping_rules.csv").unlink()

        store = DataFrameGradeStore.from_csv_dir(csv_dir)
        assert store.select_areas() == []

    def test_missing_required_file(self, csv_dir):
        (csv_dir / "grades.csv").unlink()
        with pytest.raises(GradeStoreError, match="grades.csv"):
            DataFrameGradeStore.from_csv_dir(csv_dir)
