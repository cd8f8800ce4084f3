#!/usr/bin/env python3
"""
RANKING ENGINE - Order students by average within a scope

RANKING METHODOLOGY:
✅ Exclusion: students with no grades (average 0 or absent) are never ranked
✅ Exclusion: inactive students are never ranked
✅ Scope: course code, educational level, or a single "all courses" scope
✅ Primary Sort: average (descending), stable
✅ Positions: 1..n, consecutive, no shared ranks on ties
✅ Top-N: prefix of the sorted order per scope

BEST OF LEVEL:
Two-stage reduction. First the single best student of every course, then
those course winners ranked again inside their educational level.

OUTPUT FORMATS:
- Dict scope -> List[RankEntry]
- pandas DataFrame / CSV for spreadsheet export

Priority: HIGH - Rankings, top-3 lists and centralizer highlighting
Dependencies: pandas, core.models
"""

from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

import pandas as pd

from report_card_builder.core.models import Course, RankEntry, Student, level_sort_rank

logger = logging.getLogger(__name__)

ALL_COURSES = "TODOS"


def by_course(student: Student) -> str:
    return student.course_code


def everyone(student: Student) -> str:
    return ALL_COURSES


class RankingEngine:
    """Rank students by their computed averages"""

    def __init__(self):
        self.rankings: Dict[str, List[RankEntry]] = {}
        self.ranking_log: List[str] = []

    def rank(
        self,
        students: Sequence[Student],
        averages: Mapping[str, float],
        scope_key: Callable[[Student], str] = by_course,
        top_n: Optional[int] = None,
        scope_labels: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, List[RankEntry]]:
        """
        Rank students inside each scope

        Args:
            students: Candidate students
            averages: student id -> average for the selected period
            scope_key: Maps a student to its ranking scope
            top_n: Keep only the first N entries per scope
            scope_labels: Optional display labels per scope key

        Returns:
            Dictionary mapping scope key to its ranked entries
        """
        if top_n is not None and top_n < 1:
            raise ValueError(f"top_n must be positive, got {top_n}")

        self.ranking_log = []
        self.ranking_log.append(f"🏆 Ranking {len(students)} students")

        scopes: Dict[str, List[Student]] = {}
        excluded = 0
        for student in students:
            avg = averages.get(student.id)
            if not student.active or not avg:
                excluded += 1
                continue
            scopes.setdefault(scope_key(student), []).append(student)

        if excluded:
            self.ranking_log.append(f"   Excluded {excluded} students without grades or inactive")

        rankings: Dict[str, List[RankEntry]] = {}
        for scope, members in scopes.items():
            label = (scope_labels or {}).get(scope, scope)
            # sorted() is stable: equal averages keep input order
            ordered = sorted(members, key=lambda s: averages[s.id], reverse=True)
            if top_n is not None:
                ordered = ordered[:top_n]

            rankings[scope] = [
                RankEntry(student=s, average=averages[s.id], position=i + 1, scope_label=label)
                for i, s in enumerate(ordered)
            ]
            if rankings[scope]:
                best = rankings[scope][0]
                self.ranking_log.append(
                    f"   {label}: {len(rankings[scope])} ranked, #1 {best.student.full_name} ({best.average:.2f})"
                )

        self.rankings = rankings
        self.ranking_log.append(f"✅ Rankings calculated for {len(rankings)} scopes")
        return rankings

    def top_per_course(
        self,
        students: Sequence[Student],
        averages: Mapping[str, float],
        top_n: int = 3,
        courses: Sequence[Course] = (),
    ) -> Dict[str, List[RankEntry]]:
        """Top-N students of every course"""
        labels = {c.code: c.display_name for c in courses}
        return self.rank(students, averages, by_course, top_n=top_n, scope_labels=labels)

    def best_of_level(
        self,
        students: Sequence[Student],
        averages: Mapping[str, float],
        courses: Sequence[Course],
        top_n: Optional[int] = None,
    ) -> Dict[str, List[RankEntry]]:
        """
        Best students per educational level, course winners only

        Stage 1 keeps the single best student of each course. Stage 2 ranks those
        winners inside their course's level. Levels come out ordered
        Inicial, Primaria, Secundaria.
        """
        course_level = {c.code: c.level for c in courses}
        winners = self.rank(students, averages, by_course, top_n=1)
        finalists = [entries[0].student for entries in winners.values() if entries]

        # Students in a course with no known level cannot be placed
        placed = [s for s in finalists if s.course_code in course_level]
        if len(placed) < len(finalists):
            logger.warning(f"{len(finalists) - len(placed)} course winners have no course level")

        by_level = self.rank(placed, averages, lambda s: course_level[s.course_code], top_n=top_n)
        ordered = dict(sorted(by_level.items(), key=lambda item: level_sort_rank(item[0])))
        self.rankings = ordered
        return ordered

    def get_ranking_log(self) -> List[str]:
        """Get detailed ranking calculation log"""
        return self.ranking_log

    def generate_ranking_report(self, output_path: Optional[Path] = None) -> pd.DataFrame:
        """
        Flatten the last rankings into a DataFrame

        Args:
            output_path: Optional path to save CSV report

        Returns:
            DataFrame with one row per ranked student
        """
        if not self.rankings:
            logger.warning("No rankings calculated yet")
            return pd.DataFrame()

        records = []
        for scope, entries in self.rankings.items():
            for entry in entries:
                records.append({
                    "Ámbito": entry.scope_label,
                    "Posición": entry.position,
                    "Código": entry.student.id,
                    "Apellidos": entry.student.surname,
                    "Nombres": entry.student.given_names,
                    "Curso": entry.student.course_code,
                    "Promedio": round(entry.average, 2),
                })

        df = pd.DataFrame(records)
        if output_path:
            df.to_csv(output_path, index=False)
            logger.info(f"Ranking report saved to: {output_path}")
        return df


def rank(
    students: Sequence[Student],
    averages: Mapping[str, float],
    scope_key: Callable[[Student], str] = by_course,
    top_n: Optional[int] = None,
) -> Dict[str, List[RankEntry]]:
    """Functional form of RankingEngine.rank"""
    return RankingEngine().rank(students, averages, scope_key, top_n=top_n)


def podium_positions(entries: Iterable[RankEntry]) -> Dict[str, int]:
    """student id -> position for the first three entries (centralizer tints)"""
    return {e.student.id: e.position for e in entries if e.position <= 3}


__all__ = [
    "ALL_COURSES",
    "by_course",
    "everyone",
    "RankingEngine",
    "rank",
    "podium_positions",
]
