"""Grade store contract, pandas-backed store and the paginating grade filter"""

from report_card_builder.store.base import MAX_PAGE_SIZE, GradeStore
from report_card_builder.store.dataframe import DataFrameGradeStore
from report_card_builder.store.grade_filter import (
    CourseBatch,
    CourseFailure,
    GradeFilter,
    dedupe,
    filter_records,
)

__all__ = [
    "MAX_PAGE_SIZE",
    "GradeStore",
    "DataFrameGradeStore",
    "CourseBatch",
    "CourseFailure",
    "GradeFilter",
    "dedupe",
    "filter_records",
]
