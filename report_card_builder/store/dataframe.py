#!/usr/bin/env python3
"""
DATAFRAME GRADE STORE - CSV loading and filtered range reads with pandas

DATA SOURCES:
✅ students.csv - id, given_names, surname, course_code, active
✅ courses.csv - code, display_name, level
✅ subjects.csv - code, short_name, display_name, course_code, area_id, display_order
✅ grades.csv - student_id, subject_code, period, score
✅ grouping_rules.csv (optional) - area_id, group_name, display_label, subject_code, course_code
✅ areas.csv (optional) - id, name

Spanish column names from the school database export (cod_moodle, apellidos,
nombres, curso_corto, trimestre, nota, ...) are accepted and renamed on load.

VALIDATION STRATEGY:
1. Schema Validation: required columns must exist after renaming
2. Data Quality Checks: grade rows without a usable score or period are dropped
3. Page ceiling: every read returns at most max_page_size rows

Priority: CRITICAL - Backing store for the CLI and the test suite
Dependencies: pandas
"""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import logging

import pandas as pd

from report_card_builder.core.models import (
    Area,
    Course,
    GradeRecord,
    GroupingRule,
    Student,
    Subject,
    rules_from_rows,
)
from report_card_builder.exceptions import GradeStoreError
from report_card_builder.store.base import MAX_PAGE_SIZE, GradeStore

logger = logging.getLogger(__name__)

COLUMN_ALIASES: Dict[str, str] = {
    "cod_moodle": "id",
    "nombres": "given_names",
    "apellidos": "surname",
    "curso_corto": "course_code",
    "activo": "active",
    "nombre_corto": "short_name",
    "nombre_largo": "display_name",
    "nombre": "name",
    "nivel": "level",
    "codigo": "code",
    "id_area": "area_id",
    "orden": "display_order",
    "alumno_id": "student_id",
    "materia_codigo": "subject_code",
    "trimestre": "period",
    "nota": "score",
    "nombre_grupo": "group_name",
    "nombre_mostrar": "display_label",
}

REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "students": ["id", "given_names", "surname", "course_code"],
    "courses": ["code", "display_name", "level"],
    "subjects": ["code", "short_name", "course_code"],
    "grades": ["student_id", "subject_code", "period", "score"],
    "grouping_rules": ["area_id", "group_name", "subject_code"],
    "areas": ["id", "name"],
}

TRUE_VALUES = {"true", "1", "yes", "si", "sí", "t", "y"}


def _to_bool(value) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def _rows(df: pd.DataFrame) -> List[Dict]:
    """DataFrame rows as dicts with NaN replaced by None"""
    if df is None or df.empty:
        return []
    return df.astype(object).where(pd.notna(df), None).to_dict("records")


def _prepare(df: pd.DataFrame, name: str) -> pd.DataFrame:
    df = df.rename(columns=lambda c: COLUMN_ALIASES.get(str(c).strip(), str(c).strip()))
    missing = [col for col in REQUIRED_COLUMNS[name] if col not in df.columns]
    if missing:
        raise GradeStoreError(f"{name} is missing required columns", str(missing))
    return df.reset_index(drop=True)


class DataFrameGradeStore(GradeStore):
    """GradeStore over in-memory pandas DataFrames"""

    def __init__(
        self,
        students: pd.DataFrame,
        courses: pd.DataFrame,
        subjects: pd.DataFrame,
        grades: pd.DataFrame,
        grouping_rules: Optional[pd.DataFrame] = None,
        areas: Optional[pd.DataFrame] = None,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.max_page_size = max_page_size

        self.students = _prepare(students, "students")
        if "active" not in self.students.columns:
            self.students["active"] = True
        self.courses = _prepare(courses, "courses")
        self.subjects = _prepare(subjects, "subjects")
        self.grades = self._clean_grades(_prepare(grades, "grades"))
        self.grouping_rules = (
            _prepare(grouping_rules, "grouping_rules") if grouping_rules is not None else pd.DataFrame()
        )
        self.areas = _prepare(areas, "areas") if areas is not None else pd.DataFrame()

        # Identifiers compare as strings regardless of how the frame was built
        for df, cols in (
            (self.students, ["id", "course_code"]),
            (self.courses, ["code"]),
            (self.subjects, ["code", "course_code"]),
            (self.grades, ["student_id", "subject_code"]),
        ):
            for col in cols:
                df[col] = df[col].astype(str)

        logger.info(
            f"📊 Store ready: {len(self.students)} students, {len(self.courses)} courses, "
            f"{len(self.subjects)} subjects, {len(self.grades)} grades"
        )

    @classmethod
    def from_csv_dir(cls, data_dir: Union[str, Path], max_page_size: int = MAX_PAGE_SIZE) -> "DataFrameGradeStore":
        """
        Load every CSV data source from a directory

        Args:
            data_dir: Directory holding the CSV files
            max_page_size: Row ceiling per read

        Returns:
            Loaded store
        """
        data_dir = Path(data_dir)
        logger.info(f"🔍 Loading grade data from: {data_dir}")

        frames: Dict[str, Optional[pd.DataFrame]] = {}
        for name in REQUIRED_COLUMNS:
            file_path = data_dir / f"{name}.csv"
            if not file_path.exists():
                if name in ("grouping_rules", "areas"):
                    logger.info(f"  {file_path.name} not found, continuing without it")
                    frames[name] = None
                    continue
                raise GradeStoreError(f"Missing data file {file_path.name}", str(data_dir))
            try:
                frames[name] = pd.read_csv(file_path, encoding="utf-8-sig", dtype=str)
            except (OSError, ValueError, pd.errors.ParserError) as e:
                raise GradeStoreError(f"Could not read {file_path.name}", str(e)) from e
            logger.info(f"  ✅ Loaded {len(frames[name])} rows from {file_path.name}")

        return cls(max_page_size=max_page_size, **frames)

    def _clean_grades(self, grades: pd.DataFrame) -> pd.DataFrame:
        grades = grades.copy()
        grades["score"] = pd.to_numeric(grades["score"], errors="coerce")
        grades["period"] = pd.to_numeric(grades["period"], errors="coerce")
        valid = grades["score"].notna() & grades["period"].isin([1, 2, 3])
        dropped = int((~valid).sum())
        if dropped:
            logger.warning(f"⚠️  Dropped {dropped} grade rows without a usable score or trimester")
        grades = grades[valid].copy()
        grades["period"] = grades["period"].astype(int)
        return grades.reset_index(drop=True)

    def select_grades(
        self,
        student_ids: Optional[Sequence[str]] = None,
        subject_codes: Optional[Sequence[str]] = None,
        period: Optional[int] = None,
        offset: int = 0,
        limit: int = MAX_PAGE_SIZE,
    ) -> List[GradeRecord]:
        df = self.grades
        mask = pd.Series(True, index=df.index)
        if student_ids is not None:
            mask &= df["student_id"].isin([str(s) for s in student_ids])
        if subject_codes is not None:
            mask &= df["subject_code"].isin([str(c) for c in subject_codes])
        if period is not None:
            mask &= df["period"] == int(period)

        page_size = max(0, min(limit, self.max_page_size))
        page = df[mask].iloc[offset:offset + page_size]
        return [
            GradeRecord(
                student_id=row["student_id"],
                subject_code=row["subject_code"],
                period=row["period"],
                score=row["score"],
            )
            for row in _rows(page)
        ]

    def select_students(self, course_code: Optional[str] = None, active_only: bool = True) -> List[Student]:
        df = self.students
        if course_code is not None:
            df = df[df["course_code"] == str(course_code)]
        df = df.sort_values(["surname", "given_names"], kind="stable")

        students = [
            Student(
                id=row["id"],
                given_names=row["given_names"],
                surname=row["surname"],
                course_code=row["course_code"],
                active=_to_bool(row.get("active")),
            )
            for row in _rows(df)
        ]
        if active_only:
            students = [s for s in students if s.active]
        return students

    def select_courses(self) -> List[Course]:
        return [
            Course(code=row["code"], display_name=row["display_name"] or row["code"], level=row["level"] or "")
            for row in _rows(self.courses)
        ]

    def select_subjects(self, course_code: str) -> List[Subject]:
        df = self.subjects[self.subjects["course_code"] == str(course_code)]
        subjects = []
        for row in _rows(df):
            order = row.get("display_order")
            subjects.append(
                Subject(
                    code=row["code"],
                    short_name=row["short_name"],
                    display_name=row.get("display_name") or row["short_name"],
                    course_code=row["course_code"],
                    area_id=row.get("area_id"),
                    display_order=int(float(order)) if order is not None else None,
                )
            )
        return subjects

    def select_grouping_rules(self, course_code: Optional[str] = None) -> List[GroupingRule]:
        rows = _rows(self.grouping_rules)
        if course_code is not None:
            # Rules without a course apply everywhere
            rows = [r for r in rows if not r.get("course_code") or str(r["course_code"]) == str(course_code)]
        return rules_from_rows(rows)

    def select_areas(self) -> List[Area]:
        return [Area(id=row["id"], name=row["name"]) for row in _rows(self.areas)]
