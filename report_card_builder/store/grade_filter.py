#!/usr/bin/env python3
"""
GRADE FILTER - Complete, deduplicated grade sets from a paginated store

FETCH STRATEGY:
✅ Page with offset/limit until a page comes back shorter than the ceiling
✅ Duplicate (student, subject, trimester) rows: latest row wins, logged
✅ Per-course batches: a failing course is skipped and recorded, never fatal

Without paging the store silently truncates large courses at its row
ceiling and the averages come out wrong with no error.

Priority: CRITICAL - Every report reads its grades through here
Dependencies: store.base, core.models
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from report_card_builder.core.models import Course, GradeRecord, Period, Student
from report_card_builder.exceptions import GradeStoreError
from report_card_builder.store.base import GradeStore

logger = logging.getLogger(__name__)

GradeKey = Tuple[str, str, int]


@dataclass
class CourseFailure:
    course_code: str
    error: str


@dataclass
class CourseBatch:
    """Students and grades gathered course by course"""

    students: List[Student] = field(default_factory=list)
    records: List[GradeRecord] = field(default_factory=list)
    failures: List[CourseFailure] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return [f"Curso {f.course_code}: {f.error}" for f in self.failures]


def dedupe(records: Iterable[GradeRecord]) -> List[GradeRecord]:
    """Keep one row per (student, subject, trimester); the latest occurrence wins"""
    latest: Dict[GradeKey, GradeRecord] = {}
    duplicates = 0
    for record in records:
        key = (record.student_id, record.subject_code, record.period)
        if key in latest:
            duplicates += 1
            # Reinsert so the surviving row keeps the position of its last occurrence
            del latest[key]
        latest[key] = record
    if duplicates:
        logger.warning(f"⚠️  {duplicates} duplicate grade rows found, keeping the latest of each")
    return list(latest.values())


def filter_records(
    records: Iterable[GradeRecord],
    student_ids: Optional[Iterable[str]] = None,
    subject_codes: Optional[Iterable[str]] = None,
    period: Optional[Period] = None,
) -> List[GradeRecord]:
    """Pure in-memory version of the store filter"""
    students = set(student_ids) if student_ids is not None else None
    subjects = set(subject_codes) if subject_codes is not None else None
    number = Period.parse(period).number if period is not None else None
    return [
        r
        for r in records
        if (students is None or r.student_id in students)
        and (subjects is None or r.subject_code in subjects)
        and (number is None or r.period == number)
    ]


class GradeFilter:
    """Reads complete grade sets from a GradeStore"""

    def __init__(self, store: GradeStore, page_size: Optional[int] = None):
        self.store = store
        self.page_size = min(page_size or store.max_page_size, store.max_page_size)

    def fetch_grades(
        self,
        student_ids: Optional[Sequence[str]] = None,
        subject_codes: Optional[Sequence[str]] = None,
        period: Optional[Period] = None,
    ) -> List[GradeRecord]:
        """
        Every grade row matching the filters

        Args:
            student_ids: Students to include, None for all
            subject_codes: Subjects to include, None for all
            period: A trimester narrows the read; ANNUAL or None reads all trimesters

        Returns:
            Deduplicated grade rows

        Raises:
            GradeStoreError: the store failed while reading a page
        """
        if student_ids is not None and not student_ids:
            return []
        number = Period.parse(period).number if period is not None else None

        records: List[GradeRecord] = []
        offset = 0
        pages = 0
        while True:
            try:
                page = self.store.select_grades(
                    student_ids=student_ids,
                    subject_codes=subject_codes,
                    period=number,
                    offset=offset,
                    limit=self.page_size,
                )
            except GradeStoreError:
                raise
            except Exception as e:
                raise GradeStoreError("Error al obtener calificaciones", str(e)) from e
            records.extend(page)
            pages += 1
            if len(page) < self.page_size:
                break
            offset += self.page_size

        logger.debug(f"Fetched {len(records)} grade rows in {pages} pages")
        return dedupe(records)

    def fetch_course_grades(self, courses: Sequence[Course], period: Optional[Period] = None) -> CourseBatch:
        """
        Students and grades of several courses, one course at a time

        A course whose read fails is logged and recorded in ``failures``; the
        remaining courses are still returned.
        """
        batch = CourseBatch()
        for course in courses:
            try:
                students = self.store.select_students(course.code)
                if not students:
                    continue
                subjects = self.store.select_subjects(course.code)
                records = self.fetch_grades(
                    [s.id for s in students],
                    [s.code for s in subjects],
                    period,
                )
            except Exception as e:
                logger.error(f"❌ Skipping course {course.code}: {e}")
                batch.failures.append(CourseFailure(course_code=course.code, error=str(e)))
                continue
            batch.students.extend(students)
            batch.records.extend(records)

        logger.info(
            f"Course batch: {len(batch.students)} students, {len(batch.records)} grades, "
            f"{len(batch.failures)} failed courses"
        )
        return batch


__all__ = [
    "CourseBatch",
    "CourseFailure",
    "GradeFilter",
    "dedupe",
    "filter_records",
]
