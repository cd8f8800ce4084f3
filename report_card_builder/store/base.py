"""
Grade Store contract

The relational store the reports read from. Implementations answer filtered
range reads and silently cap every page at ``max_page_size`` rows.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from report_card_builder.core.models import Area, Course, GradeRecord, GroupingRule, Student, Subject

MAX_PAGE_SIZE = 1000


class GradeStore(ABC):
    """Read-only view over students, courses, subjects and grades"""

    max_page_size: int = MAX_PAGE_SIZE

    @abstractmethod
    def select_grades(
        self,
        student_ids: Optional[Sequence[str]] = None,
        subject_codes: Optional[Sequence[str]] = None,
        period: Optional[int] = None,
        offset: int = 0,
        limit: int = MAX_PAGE_SIZE,
    ) -> List[GradeRecord]:
        """One page of grade rows in a stable order; None filters match everything"""

    @abstractmethod
    def select_students(self, course_code: Optional[str] = None, active_only: bool = True) -> List[Student]:
        """Students of a course (all courses when None), ordered by surname"""

    @abstractmethod
    def select_courses(self) -> List[Course]:
        ...

    @abstractmethod
    def select_subjects(self, course_code: str) -> List[Subject]:
        ...

    @abstractmethod
    def select_grouping_rules(self, course_code: Optional[str] = None) -> List[GroupingRule]:
        ...

    @abstractmethod
    def select_areas(self) -> List[Area]:
        ...

    def get_course(self, course_code: str) -> Optional[Course]:
        for course in self.select_courses():
            if course.code == course_code:
                return course
        return None
