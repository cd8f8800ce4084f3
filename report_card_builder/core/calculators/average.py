#!/usr/bin/env python3
"""
AVERAGE CALCULATOR - Trimester and annual averages from raw grade rows
The single place where a mean of scores is taken and rounded

CALCULATION TYPES:
✅ Trimester average: mean of the scores recorded in that trimester
✅ Annual average: mean of per-subject means (subject first, then overall)
✅ Subject average: a subject's mean across the trimesters it has grades in
✅ Period average of a subject set: per-subject value first, then the mean
✅ Mean of averages: re-rounds when averaging already-rounded averages

EDGE CASES HANDLED:
- No qualifying rows: 0.0 sentinel (never a real score of 0)
- Missing trimesters: simply absent from the mean, no zero padding
- Rounding: half away from zero, two decimals, at every aggregation step

Priority: CRITICAL - Every report and ranking goes through here
Dependencies: core.models, core.scoring
"""

from typing import Dict, Iterable, List, Optional, Sequence
import logging

from report_card_builder.core.models import GradeRecord, Period
from report_card_builder.core.scoring import round_half_away

logger = logging.getLogger(__name__)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def records_for_period(records: Iterable[GradeRecord], period: Period) -> List[GradeRecord]:
    """Rows belonging to a trimester; all rows for the annual period"""
    period = Period.parse(period)
    if period is Period.ANNUAL:
        return list(records)
    return [r for r in records if r.period == period.number]


def _scores_by_subject(records: Iterable[GradeRecord]) -> Dict[str, List[float]]:
    by_subject: Dict[str, List[float]] = {}
    for record in records:
        by_subject.setdefault(record.subject_code, []).append(record.score)
    return by_subject


def average(records: Sequence[GradeRecord], period: Period) -> float:
    """
    Average score for one (student, scope) record set

    Args:
        records: Grade rows already narrowed to the student and subject scope
        period: T1, T2, T3 or ANNUAL

    Returns:
        Average rounded to two decimals, 0.0 when there is nothing to average
    """
    period = Period.parse(period)
    selected = records_for_period(records, period)
    if not selected:
        return 0.0

    if period is not Period.ANNUAL:
        return round_half_away(_mean([r.score for r in selected]), 2)

    # Subject means stay unrounded, only the overall mean is rounded
    subject_means = [_mean(scores) for scores in _scores_by_subject(selected).values()]
    if not subject_means:
        return 0.0
    return round_half_away(_mean(subject_means), 2)


def score_for(records: Iterable[GradeRecord], subject_code: str, period: Period) -> Optional[float]:
    """A subject's score in one trimester, None when not graded"""
    period = Period.parse(period)
    found = None
    for record in records:
        if record.subject_code == subject_code and record.period == period.number:
            found = record.score
    return found


def subject_value(records: Iterable[GradeRecord], subject_code: str, period: Period) -> Optional[float]:
    """
    Unrounded value of one subject for a period

    A trimester gives the recorded score; the annual period gives the mean of
    the trimesters the subject has grades in.
    """
    period = Period.parse(period)
    if period is not Period.ANNUAL:
        return score_for(records, subject_code, period)
    scores = [r.score for r in records if r.subject_code == subject_code]
    if not scores:
        return None
    return _mean(scores)


def subject_average(records: Iterable[GradeRecord], subject_code: str) -> float:
    """Report card row average for a subject across its graded trimesters"""
    value = subject_value(records, subject_code, Period.ANNUAL)
    if value is None:
        return 0.0
    return round_half_away(value, 2)


def period_average(
    records: Sequence[GradeRecord], period: Period, subject_codes: Optional[Iterable[str]] = None
) -> float:
    """
    Trimester (or annual) average over a subject set, per-subject value first

    Each subject contributes its own value for the period; subjects without a
    value are skipped. This is the path used for official rankings and the
    report card totals row.
    """
    period = Period.parse(period)
    if subject_codes is None:
        codes = list(dict.fromkeys(r.subject_code for r in records))
    else:
        codes = list(subject_codes)

    values = []
    for code in codes:
        value = subject_value(records, code, period)
        if value is not None:
            values.append(value)

    if not values:
        return 0.0
    return round_half_away(_mean(values), 2)


def mean_of_averages(values: Iterable[Optional[float]]) -> float:
    """Average already-rounded averages, skipping empty ones, and round again"""
    present = [round_half_away(v, 2) for v in values if v]
    if not present:
        return 0.0
    return round_half_away(_mean(present), 2)


def group_records_by_student(records: Iterable[GradeRecord]) -> Dict[str, List[GradeRecord]]:
    by_student: Dict[str, List[GradeRecord]] = {}
    for record in records:
        by_student.setdefault(record.student_id, []).append(record)
    return by_student


def student_averages(
    records: Iterable[GradeRecord],
    student_ids: Iterable[str],
    period: Period,
) -> Dict[str, float]:
    """
    Average per student for a period

    Students with no qualifying rows get 0.0 so callers can drop them.
    """
    period = Period.parse(period)
    by_student = group_records_by_student(records)
    averages = {}
    for student_id in student_ids:
        averages[student_id] = average(by_student.get(student_id, []), period)

    graded = sum(1 for v in averages.values() if v > 0)
    logger.debug(f"Averages for {period.label}: {graded} of {len(averages)} students graded")
    return averages


__all__ = [
    "average",
    "records_for_period",
    "score_for",
    "subject_value",
    "subject_average",
    "period_average",
    "mean_of_averages",
    "group_records_by_student",
    "student_averages",
]
