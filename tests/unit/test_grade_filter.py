"""
Unit Tests for Grade Filter

Tests for:
- Paging past the store's row ceiling
- Duplicate grade rows (latest wins)
- Per-course batches with failing courses
- Store errors surfaced as GradeStoreError
"""

import pandas as pd
import pytest

from report_card_builder.core.models import Course, Period
from report_card_builder.exceptions import GradeStoreError
from report_card_builder.store import DataFrameGradeStore, GradeFilter, dedupe, filter_records


def school_with_grades(rows, students_df, courses_df, subjects_df, max_page_size):
    grades = pd.DataFrame(rows, columns=["student_id", "subject_code", "period", "score"])
    return DataFrameGradeStore(
        students=students_df,
        courses=courses_df,
        subjects=subjects_df,
        grades=grades,
        max_page_size=max_page_size,
    )


class BrokenCourseStore(DataFrameGradeStore):
    """Store whose reads fail for one course"""

    broken_course = "2P"

    def select_subjects(self, course_code):
        if course_code == self.broken_course:
            raise RuntimeError("timeout")
        return super().select_subjects(course_code)


class BrokenGradesStore(DataFrameGradeStore):
    def select_grades(self, *args, **kwargs):
        raise ConnectionError("connection reset")


class TestPaging:
    """Tests for reading past the page ceiling"""

    def test_twelve_rows_with_ceiling_five(self, students_df, courses_df, subjects_df):
        rows = [("101", f"S{i}", 1, 50 + i) for i in range(12)]
        store = school_with_grades(rows, students_df, courses_df, subjects_df, max_page_size=5)

        # a single read is silently truncated
        assert len(store.select_grades(limit=1000)) == 5

        records = GradeFilter(store).fetch_grades(["101"])
        assert len(records) == 12
        assert {r.subject_code for r in records} == {f"S{i}" for i in range(12)}

    def test_exact_multiple_of_page(self, students_df, courses_df, subjects_df):
        rows = [("101", f"S{i}", 1, 60) for i in range(10)]
        store = school_with_grades(rows, students_df, courses_df, subjects_df, max_page_size=5)

        assert len(GradeFilter(store).fetch_grades()) == 10

    def test_page_size_never_exceeds_ceiling(self, store):
        assert GradeFilter(store, page_size=5000).page_size == store.max_page_size
        assert GradeFilter(store, page_size=50).page_size == 50

    def test_trimester_narrows_read(self, store):
        records = GradeFilter(store).fetch_grades(["101"], period=Period.T2)
        assert [(r.subject_code, r.score) for r in records] == [("MAT", 80.0)]

    def test_annual_reads_all_trimesters(self, store):
        records = GradeFilter(store).fetch_grades(["101"], period=Period.ANNUAL)
        assert len(records) == 5

    def test_empty_student_list(self, store):
        assert GradeFilter(store).fetch_grades([]) == []


class TestDedupe:
    """Tests for duplicate (student, subject, trimester) rows"""

    def test_latest_wins(self, make_grade, caplog):
        records = [
            make_grade("1", "MAT", 1, 40),
            make_grade("1", "LEN", 1, 70),
            make_grade("1", "MAT", 1, 90),
        ]

        result = dedupe(records)

        assert len(result) == 2
        assert {r.subject_code: r.score for r in result} == {"MAT": 90.0, "LEN": 70.0}
        assert "duplicate" in caplog.text

    def test_filter_dedupes_store_rows(self, students_df, courses_df, subjects_df):
        rows = [("101", "MAT", 1, 40), ("101", "MAT", 1, 90)]
        store = school_with_grades(rows, students_df, courses_df, subjects_df, max_page_size=1000)

        records = GradeFilter(store).fetch_grades(["101"])
        assert [r.score for r in records] == [90.0]

    def test_no_duplicates_is_silent(self, make_grade, caplog):
        dedupe([make_grade("1", "MAT", 1, 40), make_grade("1", "MAT", 2, 40)])
        assert "duplicate" not in caplog.text


class TestCourseBatches:
    """Tests for fetch_course_grades()"""

    def test_all_courses(self, store):
        courses = store.select_courses()

        batch = GradeFilter(store).fetch_course_grades(courses, Period.T1)

        assert {s.id for s in batch.students} == {"101", "102", "103", "104", "201", "202", "301", "302"}
        assert batch.failures == []
        assert all(r.period == 1 for r in batch.records)

    def test_failing_course_is_skipped(self, students_df, courses_df, subjects_df, grades_df):
        store = BrokenCourseStore(students_df, courses_df, subjects_df, grades_df)

        batch = GradeFilter(store).fetch_course_grades(store.select_courses(), Period.T1)

        assert [f.course_code for f in batch.failures] == ["2P"]
        assert batch.warnings == ["Curso 2P: timeout"]
        assert "201" not in {s.id for s in batch.students}
        assert "301" in {s.id for s in batch.students}

    def test_empty_course_is_not_a_failure(self, store):
        batch = GradeFilter(store).fetch_course_grades([Course(code="9Z", display_name="Vacío", level="Primaria")])
        assert batch.students == []
        assert batch.failures == []


class TestStoreErrors:
    """Tests for error wrapping"""

    def test_store_error_wrapped(self, students_df, courses_df, subjects_df, grades_df):
        store = BrokenGradesStore(students_df, courses_df, subjects_df, grades_df)

        with pytest.raises(GradeStoreError) as exc_info:
            GradeFilter(store).fetch_grades(["101"])

        assert exc_info.value.message == "Error al obtener calificaciones"
        assert "connection reset" in exc_info.value.detail


class TestFilterRecords:
    """Tests for the in-memory filter"""

    def test_filters_combine(self, make_grade):
        records = [
            make_grade("1", "MAT", 1, 40),
            make_grade("1", "LEN", 2, 50),
            make_grade("2", "MAT", 1, 60),
        ]

        assert len(filter_records(records)) == 3
        assert len(filter_records(records, student_ids=["1"])) == 2
        assert len(filter_records(records, subject_codes=["MAT"], period="1")) == 2
        assert filter_records(records, ["2"], ["LEN"]) == []
