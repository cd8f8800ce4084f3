#!/usr/bin/env python3
"""
SIBLING CLUSTERING - Families detected by shared surname

Two phases:
1. cluster(): group active students by normalized surname, no grades needed
2. attach_averages(): backfill each member's average once the ids are known,
   so grades are fetched only for the students that ended up in a family

Priority: MEDIUM - "Lista de hermanos" report
Dependencies: core.models
"""

from typing import Dict, Iterable, List, Mapping, Optional, Sequence
import logging
import re
import unicodedata

from report_card_builder.core.models import FamilyGroup, FamilyMember, Student

logger = logging.getLogger(__name__)

DEFAULT_MIN_SIZE = 3


def normalize_surname(text: Optional[str]) -> str:
    """Lowercase, strip diacritics and punctuation, collapse whitespace"""
    if not text:
        return ""
    value = unicodedata.normalize("NFKD", str(text).lower())
    value = "".join(ch for ch in value if unicodedata.category(ch) != "Mn")
    value = re.sub(r"[^a-z0-9\s]", "", value)
    return " ".join(value.split())


def cluster(
    students: Iterable[Student],
    min_size: int = DEFAULT_MIN_SIZE,
    course_names: Optional[Mapping[str, str]] = None,
) -> List[FamilyGroup]:
    """
    Group active students sharing a normalized surname

    Args:
        students: Candidate students, any order
        min_size: Minimum members for a family to be reported
        course_names: Optional course code -> display name

    Returns:
        Families ordered by normalized surname, members in input order
    """
    if min_size < 1:
        raise ValueError(f"min_size must be positive, got {min_size}")

    course_names = course_names or {}
    buckets: Dict[str, List[Student]] = {}
    for student in students:
        if not student.active:
            continue
        key = normalize_surname(student.surname)
        if not key:
            continue
        buckets.setdefault(key, []).append(student)

    families = []
    for key in sorted(buckets):
        members = buckets[key]
        if len(members) < min_size:
            continue
        families.append(
            FamilyGroup(
                key=key,
                surname=members[0].surname,
                members=[
                    FamilyMember(student=s, course_name=course_names.get(s.course_code, s.course_code))
                    for s in members
                ],
            )
        )

    logger.info(f"👪 {len(families)} families with {min_size}+ students out of {len(buckets)} surnames")
    return families


def member_ids(groups: Iterable[FamilyGroup]) -> List[str]:
    """Student ids whose grades are needed for the second phase"""
    return [m.student.id for g in groups for m in g.members]


def attach_averages(groups: Sequence[FamilyGroup], averages: Mapping[str, float]) -> List[FamilyGroup]:
    """New families with each member's average; 0 or missing becomes None"""
    enriched = []
    for group in groups:
        members = [
            member.model_copy(update={"average": averages.get(member.student.id) or None})
            for member in group.members
        ]
        enriched.append(group.model_copy(update={"members": members}))
    return enriched


__all__ = [
    "DEFAULT_MIN_SIZE",
    "normalize_surname",
    "cluster",
    "member_ids",
    "attach_averages",
]
