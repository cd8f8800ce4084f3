#!/usr/bin/env python3
"""
REPORT BUILDERS - Calculator output to renderable report sections

REPORT TYPES:
✅ Report card (boletín): area/subject rows, three trimesters, annual average
✅ Internal centralizer: one column per subject, statistics table
✅ MINEDU centralizer: regulatory group columns, integer scores
✅ Ranking list, top-N per course, best of each level
✅ Sibling list: families of three or more students
✅ Grade sheet (entrega de notas): one subject, one trimester

Every mean goes through core.calculators.average; builders only arrange
values and choose the score policy of their report type.

Priority: HIGH - Layout of every printable report
Dependencies: core.calculators, core.scoring, reports.images, reports.renderer
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence
import logging
import re

from report_card_builder.core.calculators.average import (
    average,
    group_records_by_student,
    mean_of_averages,
    period_average,
    score_for,
    subject_average,
    subject_value,
)
from report_card_builder.core.calculators.grouping import (
    GroupingLookup,
    element_score,
    group_subjects_by_area,
    resolve,
    sort_by_display_order,
)
from report_card_builder.core.calculators.ranking import RankingEngine, everyone, podium_positions
from report_card_builder.core.models import (
    Course,
    FamilyGroup,
    GradeRecord,
    GroupElement,
    GroupingRule,
    OrderedElement,
    Period,
    RankEntry,
    Student,
    Subject,
    level_sort_rank,
)
from report_card_builder.core.scoring import CONTINUOUS, PERFORMANCE_SCALE, REGULATORY_INTEGER
from report_card_builder.reports.images import (
    LOGO_BOX_PODIUM,
    LOGO_WIDTH_CENTRALIZER,
    LOGO_WIDTH_RANKING,
    LOGO_WIDTH_REPORT_CARD,
    LoadedImage,
    PlacedImage,
    bound_to_box,
    scale_to_width,
)
from report_card_builder.reports.renderer import ReportSection, format_date

logger = logging.getLogger(__name__)

SIGNATURE_LABELS = ["Director/a", "Padre o Apoderado"]
TINTS = {1: "top-1", 2: "top-2", 3: "top-3"}


@dataclass
class Letterhead:
    """Institution data shared by every section of a document"""

    institution_name: str
    logo: Optional[LoadedImage] = None
    issued: date = field(default_factory=date.today)

    @property
    def date_text(self) -> str:
        return format_date(self.issued)

    def logo_width(self, width: float) -> Optional[PlacedImage]:
        return scale_to_width(self.logo, width) if self.logo else None

    def logo_box(self, box=LOGO_BOX_PODIUM) -> Optional[PlacedImage]:
        return bound_to_box(self.logo, *box) if self.logo else None


def _present(value: Optional[float]) -> Optional[float]:
    """0 is the no-data sentinel; show it as empty"""
    return value if value else None


def _tint(position: Optional[int]) -> str:
    return TINTS.get(position, "") if position else ""


def _course_name(course: Optional[Course], fallback: str = "") -> str:
    return course.display_name if course else fallback


# =========================
# Report card (boletín)
# =========================

def build_report_card(
    student: Student,
    course: Optional[Course],
    subjects: Sequence[Subject],
    records: Sequence[GradeRecord],
    lookup: GroupingLookup,
    letterhead: Letterhead,
    footer: Optional[PlacedImage] = None,
) -> ReportSection:
    """
    One student's report card

    Args:
        student: The student
        course: The student's course
        subjects: Subjects of the course
        records: Grade rows (other students' rows are ignored)
        lookup: Area names for the subject grouping
        letterhead: Institution name, logo and issue date
        footer: Fitted footer image; signature lines are printed without it

    Returns:
        Report section for the report_card.html template
    """
    codes = [s.code for s in subjects]
    own = [r for r in records if r.student_id == student.id and r.subject_code in codes]

    rows = []
    for area in group_subjects_by_area(subjects, lookup):
        for i, subject in enumerate(area.subjects):
            rows.append({
                "area_name": area.area_name,
                "rowspan": len(area.subjects) if i == 0 else 0,
                "subject": subject.display_name,
                "scores": [score_for(own, subject.code, p) for p in Period.trimesters()],
                "annual": _present(subject_average(own, subject.code)),
            })

    totals = [_present(average(own, p)) for p in Period.trimesters()]
    context = {
        "title": "Boletín de Calificaciones",
        "subtitle_lines": [letterhead.institution_name, letterhead.date_text],
        "header_align": "center",
        "logo": letterhead.logo_width(LOGO_WIDTH_REPORT_CARD),
        "performance_scale": PERFORMANCE_SCALE,
        "student": student,
        "course_name": _course_name(course, student.course_code),
        "periods": [p.label for p in Period.trimesters()],
        "rows": rows,
        "totals": totals,
        # mean of the rounded trimester totals, empty trimesters skipped
        "annual_total": _present(mean_of_averages(totals)),
        "footer": footer,
        "signatures": SIGNATURE_LABELS,
    }
    return ReportSection("report_card.html", context, title=student.full_name, policy=CONTINUOUS)


def build_report_cards(
    students: Sequence[Student],
    course: Optional[Course],
    subjects: Sequence[Subject],
    records: Sequence[GradeRecord],
    lookup: GroupingLookup,
    letterhead: Letterhead,
    footer: Optional[PlacedImage] = None,
) -> List[ReportSection]:
    """One report card per student, in input order"""
    by_student = group_records_by_student(records)
    return [
        build_report_card(s, course, subjects, by_student.get(s.id, []), lookup, letterhead, footer)
        for s in students
    ]


# =========================
# Centralizers
# =========================

def _podium(students: Sequence[Student], averages: Mapping[str, float]) -> Dict[str, int]:
    ranking = RankingEngine().rank(students, averages, everyone, top_n=3)
    return podium_positions(entry for entries in ranking.values() for entry in entries)


def build_internal_centralizer(
    course: Course,
    students: Sequence[Student],
    subjects: Sequence[Subject],
    records: Sequence[GradeRecord],
    period: Period,
    letterhead: Letterhead,
) -> ReportSection:
    """
    Internal centralizer: one column per subject with two-decimal scores

    Subjects are ordered by display order (None last). The trailing average
    is the student's period average over those subjects.
    """
    period = Period.parse(period)
    ordered = sort_by_display_order(subjects)
    codes = [s.code for s in ordered]
    by_student = group_records_by_student(records)

    averages = {s.id: period_average(by_student.get(s.id, []), period, codes) for s in students}
    podium = _podium(students, averages)

    rows = []
    for i, student in enumerate(students):
        own = by_student.get(student.id, [])
        rows.append({
            "index": i + 1,
            "surname": student.surname,
            "given_names": student.given_names,
            "scores": [subject_value(own, code, period) for code in codes],
            "average": _present(averages[student.id]),
            "tint": _tint(podium.get(student.id)),
        })

    graded = [a for a in averages.values() if a]
    statistics = [
        ("Total de alumnos", str(len(students))),
        ("Alumnos con calificaciones", str(len(graded))),
        ("Promedio general", CONTINUOUS.format(mean_of_averages(graded))),
        ("Nota más alta", CONTINUOUS.format(max(graded) if graded else 0.0)),
        ("Nota más baja", CONTINUOUS.format(min(graded) if graded else 0.0)),
    ]

    context = {
        "title": "Centralizador de Calificaciones",
        "subtitle_lines": [
            letterhead.institution_name,
            f"Curso: {course.display_name}",
            f"Periodo: {period.label}",
            f"Fecha: {letterhead.date_text}",
        ],
        "header_align": "right",
        "logo": letterhead.logo_width(LOGO_WIDTH_CENTRALIZER),
        "columns": [s.short_name for s in ordered],
        "rows": rows,
        "statistics": statistics,
    }
    return ReportSection("internal_centralizer.html", context, title=course.display_name, policy=CONTINUOUS)


def build_minedu_centralizer(
    course: Course,
    students: Sequence[Student],
    subjects: Sequence[Subject],
    rules: Sequence[GroupingRule],
    records: Sequence[GradeRecord],
    period: Period,
    letterhead: Letterhead,
) -> ReportSection:
    """
    Ministry centralizer: regulatory group columns with integer scores

    Grouped subjects collapse into one column whose score is the integer mean
    of the members; other subjects keep their own column.
    """
    period = Period.parse(period)
    elements: List[OrderedElement] = resolve(subjects, rules)
    codes = [s.code for s in subjects]
    by_student = group_records_by_student(records)

    averages = {s.id: period_average(by_student.get(s.id, []), period, codes) for s in students}
    podium = _podium(students, averages)

    rows = []
    for i, student in enumerate(students):
        own = by_student.get(student.id, [])
        rows.append({
            "index": i + 1,
            "surname": student.surname,
            "given_names": student.given_names,
            "scores": [element_score(own, e, period) for e in elements],
            "average": _present(averages[student.id]),
            "tint": _tint(podium.get(student.id)),
        })

    grouping_legend = [
        f"{e.label}: {e.display_label}" for e in elements if isinstance(e, GroupElement)
    ]
    context = {
        "title": "Centralizador MINEDU",
        "subtitle_lines": [
            letterhead.institution_name,
            period.label,
            f"Curso: {course.display_name}",
            f"Fecha: {letterhead.date_text}",
        ],
        "header_align": "center",
        "logo": letterhead.logo_width(LOGO_WIDTH_CENTRALIZER),
        "columns": [e.label for e in elements],
        "rows": rows,
        "grouping_legend": grouping_legend,
    }
    return ReportSection("minedu_centralizer.html", context, title=course.display_name, policy=REGULATORY_INTEGER)


# =========================
# Rankings
# =========================

def build_ranking(
    entries: Sequence[RankEntry],
    period: Period,
    scope_label: str,
    letterhead: Letterhead,
    course_names: Optional[Mapping[str, str]] = None,
    notes: Sequence[str] = (),
) -> ReportSection:
    """Ranking list with gold/silver/bronze tints for the first three positions"""
    period = Period.parse(period)
    course_names = course_names or {}
    rows = [
        {
            "position": e.position,
            "code": e.student.id,
            "surname": e.student.surname,
            "given_names": e.student.given_names,
            "course": course_names.get(e.student.course_code, e.student.course_code),
            "average": e.average,
            "tint": _tint(e.position),
        }
        for e in entries
    ]
    context = {
        "title": "Ranking de Alumnos",
        "subtitle_lines": [period.label, f"Curso: {scope_label}", f"Fecha: {letterhead.date_text}"],
        "header_align": "right",
        "logo": letterhead.logo_width(LOGO_WIDTH_RANKING),
        "rows": rows,
        "notes": list(notes),
    }
    return ReportSection("ranking.html", context, title=scope_label, policy=CONTINUOUS)


def build_top_per_course(
    rankings: Mapping[str, Sequence[RankEntry]],
    courses: Sequence[Course],
    period: Period,
    letterhead: Letterhead,
    notes: Sequence[str] = (),
) -> List[ReportSection]:
    """
    Top students of every course, one section (page) per educational level

    Courses without ranked students print "No hay datos suficientes".
    """
    period = Period.parse(period)
    levels: Dict[str, List[Course]] = {}
    for course in sorted(courses, key=lambda c: level_sort_rank(c.level)):
        levels.setdefault(course.level, []).append(course)

    sections = []
    for level, level_courses in levels.items():
        tables = []
        for course in level_courses:
            entries = rankings.get(course.code, [])
            tables.append({
                "course_name": course.display_name,
                "rows": [
                    {"position": e.position, "name": e.student.full_name, "average": e.average, "tint": _tint(e.position)}
                    for e in entries
                ],
            })
        context = {
            "title": "Mejores Alumnos por Curso",
            "subtitle_lines": [f"Periodo: {period.label}", f"Fecha de generación: {letterhead.date_text}"],
            "header_align": "right",
            "logo": letterhead.logo_box(),
            "level": level,
            "tables": tables,
            "notes": list(notes) if not sections else [],
        }
        sections.append(ReportSection("top_per_course.html", context, title=f"Nivel {level}", policy=CONTINUOUS))
    return sections


def build_best_of_level(
    rankings: Mapping[str, Sequence[RankEntry]],
    period: Period,
    letterhead: Letterhead,
    course_names: Optional[Mapping[str, str]] = None,
    levels: Sequence[str] = ("Primaria", "Secundaria"),
    notes: Sequence[str] = (),
) -> ReportSection:
    """Course winners ranked inside each level, one table per level"""
    period = Period.parse(period)
    course_names = course_names or {}
    shown = list(levels) + [lvl for lvl in rankings if lvl not in levels]
    tables = []
    for level in sorted(shown, key=level_sort_rank):
        entries = rankings.get(level, [])
        tables.append({
            "level": level,
            "rows": [
                {
                    "position": e.position,
                    "name": e.student.full_name,
                    "course": course_names.get(e.student.course_code, e.student.course_code),
                    "average": e.average,
                    "tint": _tint(e.position),
                }
                for e in entries
            ],
        })
    context = {
        "title": "Mejores Alumnos por Nivel",
        "subtitle_lines": [f"Periodo: {period.label}", f"Fecha de generación: {letterhead.date_text}"],
        "header_align": "right",
        "logo": letterhead.logo_box(),
        "tables": tables,
        "notes": list(notes),
    }
    return ReportSection("best_of_level.html", context, title="Mejores por nivel", policy=CONTINUOUS)


# =========================
# Sibling list and grade sheet
# =========================

def build_sibling_list(
    families: Sequence[FamilyGroup],
    period: Period,
    letterhead: Letterhead,
    min_size: int = 3,
) -> ReportSection:
    """Families with their members' averages; missing averages print "-" """
    period = Period.parse(period)
    context = {
        "title": "Lista de Hermanos",
        "subtitle_lines": [f"Periodo: {period.label}", f"Fecha de generación: {letterhead.date_text}"],
        "header_align": "right",
        "logo": letterhead.logo_width(LOGO_WIDTH_RANKING),
        "families": families,
        "min_size": min_size,
    }
    return ReportSection("sibling_list.html", context, title="Hermanos", policy=CONTINUOUS)


def build_grade_sheet(
    course: Course,
    subject: Subject,
    students: Sequence[Student],
    records: Sequence[GradeRecord],
    period: Period,
    letterhead: Letterhead,
    teacher_name: str = "",
) -> ReportSection:
    """A subject's scores for one trimester, as handed in by the teacher"""
    period = Period.parse(period)
    by_student = group_records_by_student(records)
    rows = [
        {
            "index": i + 1,
            "surname": s.surname,
            "given_names": s.given_names,
            "score": subject_value(by_student.get(s.id, []), subject.code, period),
        }
        for i, s in enumerate(students)
    ]
    context = {
        "title": f"Entrega de Notas {period.label}",
        "subtitle_lines": [letterhead.institution_name, f"Fecha: {letterhead.date_text}"],
        "header_align": "right",
        "logo": letterhead.logo_width(LOGO_WIDTH_RANKING),
        "course_name": course.display_name,
        "subject_name": subject.display_name,
        "teacher_name": teacher_name,
        "rows": rows,
    }
    return ReportSection("grade_sheet.html", context, title=subject.display_name, policy=CONTINUOUS)


# =========================
# File names
# =========================

def _token(text: str) -> str:
    """File-name safe token: spaces to underscores, drop path separators"""
    return re.sub(r"[^\w\-]+", "_", text.strip()).strip("_")


def report_filename(
    kind: str,
    period: Optional[Period] = None,
    subject: str = "",
    course: str = "",
    student: str = "",
    min_siblings: int = 3,
) -> str:
    """
    Output file name for a report

    Args:
        kind: report_card, report_cards, centralizer, minedu, ranking,
              top3, level, siblings or grade_sheet
        period: Period of the report
        subject: Subject code (grade sheets)
        course: Course code, empty for all courses (rankings)
        student: Student name (single report card)
        min_siblings: Smallest family size listed (sibling list)
    """
    period = Period.parse(period) if period is not None else None
    label = _token(period.label) if period else ""
    token = period.file_token if period else ""

    names = {
        "report_card": lambda: f"Boletin_{_token(course)}_{_token(student)}.pdf",
        "report_cards": lambda: f"Boletines_{_token(course)}.pdf",
        "centralizer": lambda: f"Centralizador_{_token(course)}_{token}.pdf",
        "minedu": lambda: f"Centralizador_MINEDU_{_token(course)}_{token}.pdf",
        "ranking": lambda: f"Ranking_{_token(course) or 'TodosLosCursos'}_{token}.pdf",
        "top3": lambda: f"Ranking_Top3_{label}.pdf",
        "level": lambda: f"Ranking_Nivel_{label}.pdf",
        "siblings": lambda: f"Alumnos_con_{min_siblings}_o_mas_hermanos_{label}.pdf",
        "grade_sheet": lambda: f"Calificaciones_{_token(subject)}_{token}.pdf",
    }
    if kind not in names:
        raise ValueError(f"Unknown report kind: {kind}")
    return names[kind]()


__all__ = [
    "Letterhead",
    "SIGNATURE_LABELS",
    "build_report_card",
    "build_report_cards",
    "build_internal_centralizer",
    "build_minedu_centralizer",
    "build_ranking",
    "build_top_per_course",
    "build_best_of_level",
    "build_sibling_list",
    "build_grade_sheet",
    "report_filename",
]
