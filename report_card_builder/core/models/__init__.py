"""Data models shared by calculators, store and renderer"""

from report_card_builder.core.models.records import (
    Area,
    Course,
    FamilyGroup,
    FamilyMember,
    GradeRecord,
    GroupElement,
    GroupingRule,
    Level,
    OrderedElement,
    Period,
    RankEntry,
    Student,
    Subject,
    SubjectElement,
    level_sort_rank,
    rules_from_rows,
)

__all__ = [
    "Area",
    "Course",
    "FamilyGroup",
    "FamilyMember",
    "GradeRecord",
    "GroupElement",
    "GroupingRule",
    "Level",
    "OrderedElement",
    "Period",
    "RankEntry",
    "Student",
    "Subject",
    "SubjectElement",
    "level_sort_rank",
    "rules_from_rows",
]
