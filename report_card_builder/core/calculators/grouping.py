#!/usr/bin/env python3
"""
GROUPING RESOLVER - Regulatory subject groups for MINEDU centralizers
and area grouping for report cards

RESOLUTION RULES:
✅ Subjects covered by a grouping rule collapse into one group column
✅ Uncovered subjects are displayed individually
✅ Group order: lowest display order among its members present (default 1000)
✅ Subject order: its own display order (default 1000)
✅ Stable sort: groups (first-seen order) then subjects (input order) on ties

GROUP SCORE:
Integer mean of the member subjects' values, half away from zero.
No member value means "no data" (None), never 0.

Priority: HIGH - Column layout of the ministry report
Dependencies: core.models, core.calculators.average, core.scoring
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from report_card_builder.core.calculators.average import subject_value
from report_card_builder.core.models import (
    Area,
    GradeRecord,
    GroupElement,
    GroupingRule,
    OrderedElement,
    Period,
    Subject,
    SubjectElement,
)
from report_card_builder.core.scoring import round_half_away

logger = logging.getLogger(__name__)

DEFAULT_ORDER = 1000
NO_AREA = "Sin área"


@dataclass
class GroupingLookup:
    """Lookups built once per report invocation and passed around explicitly"""

    area_names: Dict[str, str] = field(default_factory=dict)
    subjects_by_code: Dict[str, Subject] = field(default_factory=dict)
    subject_group: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    groups: Dict[Tuple[str, str], GroupElement] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        subjects: Sequence[Subject],
        rules: Sequence[GroupingRule] = (),
        areas: Sequence[Area] = (),
    ) -> "GroupingLookup":
        lookup = cls(
            area_names={a.id: a.name for a in areas},
            subjects_by_code={s.code: s for s in subjects},
        )
        for element in resolve(subjects, rules):
            if isinstance(element, GroupElement):
                lookup.groups[element.key] = element
                for code in element.member_codes:
                    lookup.subject_group[code] = element.key
        return lookup

    def subject_name(self, code: str) -> str:
        """Short name of a subject, the code itself when unknown"""
        subject = self.subjects_by_code.get(code)
        return subject.short_name if subject else code

    def area_name(self, area_id: Optional[str]) -> str:
        if area_id and area_id in self.area_names:
            return self.area_names[area_id]
        return NO_AREA


def resolve(subjects: Sequence[Subject], rules: Sequence[GroupingRule]) -> List[OrderedElement]:
    """
    Map a flat subject list into ordered display elements

    Args:
        subjects: Subjects of the course
        rules: Grouping rules (one per group, members as a set)

    Returns:
        Group and subject elements sorted by display order
    """
    subjects_by_code = {s.code: s for s in subjects}

    # key -> (rule, member codes); first rule wins for a subject listed twice
    groups: Dict[Tuple[str, str], Tuple[GroupingRule, List[str]]] = {}
    owner: Dict[str, Tuple[str, str]] = {}
    for rule in rules:
        key = rule.key
        if key not in groups:
            groups[key] = (rule, [])
        for code in rule.member_subject_codes:
            if code in owner and owner[code] != key:
                logger.warning(
                    f"Subject {code} already grouped under {owner[code]}, ignoring it in {key}"
                )
                continue
            if code not in groups[key][1]:
                groups[key][1].append(code)
            owner[code] = key

    elements: List[OrderedElement] = []
    for key, (rule, codes) in groups.items():
        orders = [
            subjects_by_code[code].display_order
            for code in codes
            if code in subjects_by_code and subjects_by_code[code].display_order is not None
        ]
        elements.append(
            GroupElement(
                key=key,
                label=rule.group_name,
                display_label=rule.display_label,
                member_codes=codes,
                order=min(orders) if orders else DEFAULT_ORDER,
            )
        )

    for subject in subjects:
        if subject.code in owner:
            continue
        elements.append(
            SubjectElement(
                code=subject.code,
                label=subject.short_name,
                order=subject.display_order if subject.display_order is not None else DEFAULT_ORDER,
            )
        )

    # sorted() is stable: ties keep groups-then-subjects input order
    return sorted(elements, key=lambda e: e.order)


def group_score(
    records: Iterable[GradeRecord],
    member_codes: Iterable[str],
    period: Period,
) -> Optional[int]:
    """
    Integer score of a regulatory group for one student

    Args:
        records: The student's grade rows
        member_codes: Subject codes of the group
        period: Trimester or annual period

    Returns:
        Rounded mean of the member values, None when no member has a value
    """
    records = list(records)
    values = []
    for code in member_codes:
        value = subject_value(records, code, period)
        if value is not None:
            values.append(value)
    if not values:
        return None
    return int(round_half_away(sum(values) / len(values), 0))


def element_score(
    records: Sequence[GradeRecord],
    element: OrderedElement,
    period: Period,
) -> Optional[int]:
    """Integer score shown in a MINEDU cell for a group or a single subject"""
    if isinstance(element, GroupElement):
        return group_score(records, element.member_codes, period)
    value = subject_value(records, element.code, period)
    if value is None:
        return None
    return int(round_half_away(value, 0))


def sort_by_display_order(subjects: Iterable[Subject]) -> List[Subject]:
    """Subjects by display order, None last, stable otherwise"""
    return sorted(
        subjects,
        key=lambda s: (s.display_order is None, s.display_order if s.display_order is not None else 0),
    )


@dataclass
class AreaGroup:
    """Report card rows that share an area"""

    area_id: Optional[str]
    area_name: str
    subjects: List[Subject]


def group_subjects_by_area(subjects: Sequence[Subject], lookup: GroupingLookup) -> List[AreaGroup]:
    """
    Report card grouping by regulatory area

    Areas sort by name, subjects inside an area by display order (None as 0).
    Subjects with no area or an unknown area fall under "Sin área".
    """
    named = [(lookup.area_name(s.area_id), s) for s in subjects]
    named.sort(key=lambda pair: (pair[0], pair[1].display_order or 0))

    groups: Dict[str, AreaGroup] = {}
    for area_name, subject in named:
        area_id = subject.area_id if subject.area_id in lookup.area_names else None
        group_key = area_id or "sin-area"
        if group_key not in groups:
            groups[group_key] = AreaGroup(area_id=area_id, area_name=area_name, subjects=[])
        groups[group_key].subjects.append(subject)
    return list(groups.values())


__all__ = [
    "DEFAULT_ORDER",
    "NO_AREA",
    "GroupingLookup",
    "resolve",
    "group_score",
    "element_score",
    "sort_by_display_order",
    "AreaGroup",
    "group_subjects_by_area",
]
