"""
Unit Tests for Ranking Engine

Tests for:
- Descending order and consecutive positions
- Exclusion of students without grades and inactive students
- Top-N truncation
- Stable tie handling
- Best of level (two-stage)
- Report export
"""

import pandas as pd
import pytest

from report_card_builder.core.calculators.ranking import (
    ALL_COURSES,
    RankingEngine,
    everyone,
    podium_positions,
    rank,
)
from report_card_builder.core.models import Course, Student


def student(id, course="1P", surname="Apellido", active=True):
    return Student(id=id, given_names=f"Alumno {id}", surname=surname, course_code=course, active=active)


class TestRanking:
    """Tests for RankingEngine.rank()"""

    def test_sorted_descending(self):
        students = [student("1"), student("2"), student("3")]
        averages = {"1": 70.0, "2": 95.5, "3": 81.25}

        result = RankingEngine().rank(students, averages)

        entries = result["1P"]
        assert [e.student.id for e in entries] == ["2", "3", "1"]
        assert [e.position for e in entries] == [1, 2, 3]
        assert entries[0].average == 95.5

    def test_scoped_by_course(self, students):
        averages = {"1": 80.0, "2": 90.0, "3": 60.0, "4": 70.0, "5": 99.0}

        result = rank(students, averages)

        assert set(result) == {"1P", "2P", "1S"}
        assert [e.student.id for e in result["1P"]] == ["2", "1"]
        assert [e.student.id for e in result["2P"]] == ["4", "3"]
        assert result["1S"][0].position == 1

    def test_students_without_grades_excluded(self, students):
        averages = {"1": 80.0, "2": 0, "3": 60.0}

        result = rank(students, averages, everyone)

        ids = [e.student.id for e in result[ALL_COURSES]]
        assert ids == ["1", "3"]

    def test_inactive_excluded(self):
        students = [student("1", active=False), student("2")]
        result = rank(students, {"1": 99.0, "2": 50.0})
        assert [e.student.id for e in result["1P"]] == ["2"]

    def test_top_n_is_prefix(self):
        students = [student(str(i)) for i in range(1, 8)]
        averages = {str(i): 50.0 + i for i in range(1, 8)}

        full = rank(students, averages)["1P"]
        top = rank(students, averages, top_n=3)["1P"]

        assert top == full[:3]

    def test_top_n_larger_than_scope(self):
        students = [student("1"), student("2")]
        result = rank(students, {"1": 60.0, "2": 70.0}, top_n=10)
        assert len(result["1P"]) == 2

    @pytest.mark.parametrize("top_n", [0, -1])
    def test_invalid_top_n(self, top_n):
        with pytest.raises(ValueError):
            rank([student("1")], {"1": 60.0}, top_n=top_n)

    def test_ties_keep_input_order(self):
        """Equal averages get consecutive positions in input order"""
        students = [student("a"), student("b"), student("c")]
        result = rank(students, {"a": 80.0, "b": 90.0, "c": 80.0})

        entries = result["1P"]
        assert [e.student.id for e in entries] == ["b", "a", "c"]
        assert [e.position for e in entries] == [1, 2, 3]

    def test_scope_labels(self, courses):
        students = [student("1", "1P")]
        result = RankingEngine().top_per_course(students, {"1": 70.0}, courses=courses)
        assert result["1P"][0].scope_label == "Primero de Primaria"

    def test_empty_input(self):
        assert rank([], {}) == {}

    def test_ranking_log(self):
        engine = RankingEngine()
        engine.rank([student("1"), student("2")], {"1": 70.0})

        log = engine.get_ranking_log()
        assert log[0].startswith("🏆 Ranking 2 students")
        assert any("Excluded 1" in line for line in log)
        assert log[-1].startswith("✅")


class TestTopPerCourse:
    """Tests for the top-3 per course list"""

    def test_three_per_course(self):
        students = [student(str(i), "1P") for i in range(5)] + [student("x", "2P")]
        averages = {str(i): 60.0 + i for i in range(5)}
        averages["x"] = 75.0

        result = RankingEngine().top_per_course(students, averages)

        assert [e.student.id for e in result["1P"]] == ["4", "3", "2"]
        assert len(result["2P"]) == 1


class TestBestOfLevel:
    """Tests for the two-stage best-of-level ranking"""

    def test_only_course_winners_are_ranked(self, courses):
        students = [
            student("p1", "1P"), student("p2", "1P"),
            student("q1", "2P"),
            student("s1", "1S"), student("s2", "1S"),
        ]
        # p2 beats q1 but only the best of each course enters stage 2
        averages = {"p1": 98.0, "p2": 95.0, "q1": 90.0, "s1": 70.0, "s2": 85.0}

        result = RankingEngine().best_of_level(students, averages, courses)

        assert list(result) == ["Primaria", "Secundaria"]
        assert [e.student.id for e in result["Primaria"]] == ["p1", "q1"]
        assert [e.student.id for e in result["Secundaria"]] == ["s2"]
        assert all("p2" != e.student.id for e in result["Primaria"])

    def test_top_n_per_level(self, courses):
        students = [student("p1", "1P"), student("q1", "2P")]
        result = RankingEngine().best_of_level(students, {"p1": 60.0, "q1": 80.0}, courses, top_n=1)
        assert [e.student.id for e in result["Primaria"]] == ["q1"]

    def test_course_without_level_is_skipped(self, courses, caplog):
        students = [student("p1", "1P"), student("z1", "9Z")]
        result = RankingEngine().best_of_level(students, {"p1": 60.0, "z1": 99.0}, courses)

        assert list(result) == ["Primaria"]
        assert "no course level" in caplog.text


class TestRankingReport:
    """Tests for DataFrame/CSV export"""

    def test_dataframe_columns(self, students):
        engine = RankingEngine()
        engine.rank(students, {"1": 80.0, "2": 90.123})

        df = engine.generate_ranking_report()

        assert list(df.columns) == ["Ámbito", "Posición", "Código", "Apellidos", "Nombres", "Curso", "Promedio"]
        assert df.iloc[0]["Código"] == "2"
        assert df.iloc[0]["Promedio"] == 90.12

    def test_csv_written(self, students, tmp_path):
        engine = RankingEngine()
        engine.rank(students, {"1": 80.0})
        path = tmp_path / "ranking.csv"

        engine.generate_ranking_report(path)

        saved = pd.read_csv(path)
        assert len(saved) == 1
        assert saved.iloc[0]["Apellidos"] == "Peña"

    def test_empty_before_ranking(self):
        assert RankingEngine().generate_ranking_report().empty


class TestPodium:
    """Tests for podium_positions()"""

    def test_first_three_only(self):
        students = [student(str(i)) for i in range(5)]
        entries = rank(students, {str(i): 50.0 + i for i in range(5)})["1P"]

        assert podium_positions(entries) == {"4": 1, "3": 2, "2": 3}
