"""Calculators: averages, regulatory grouping, rankings and sibling clusters"""

from report_card_builder.core.calculators.average import (
    average,
    group_records_by_student,
    mean_of_averages,
    period_average,
    score_for,
    student_averages,
    subject_average,
    subject_value,
)
from report_card_builder.core.calculators.grouping import (
    GroupingLookup,
    element_score,
    group_score,
    group_subjects_by_area,
    resolve,
    sort_by_display_order,
)
from report_card_builder.core.calculators.ranking import (
    ALL_COURSES,
    RankingEngine,
    by_course,
    everyone,
    podium_positions,
    rank,
)
from report_card_builder.core.calculators.siblings import (
    attach_averages,
    cluster,
    member_ids,
    normalize_surname,
)

__all__ = [
    "average",
    "group_records_by_student",
    "mean_of_averages",
    "period_average",
    "score_for",
    "student_averages",
    "subject_average",
    "subject_value",
    "GroupingLookup",
    "element_score",
    "group_score",
    "group_subjects_by_area",
    "resolve",
    "sort_by_display_order",
    "ALL_COURSES",
    "RankingEngine",
    "by_course",
    "everyone",
    "podium_positions",
    "rank",
    "attach_averages",
    "cluster",
    "member_ids",
    "normalize_surname",
]
