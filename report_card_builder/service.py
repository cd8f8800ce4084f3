#!/usr/bin/env python3
"""
REPORT SERVICE - Orchestrates store reads, calculators and the renderer

GENERATION PROCESS:
1. Read students, subjects and grades through the GradeFilter (paginated)
2. Compute averages, groupings, rankings or sibling clusters
3. Build report sections and wrap them in a Document
4. Render the Document to PDF bytes

ERROR SURFACING:
- A failing course in a multi-course report is skipped and returned as a warning
- A failing image degrades to no image
- Anything else aborts the report with one ReportGenerationError whose
  message can be shown to the user as is

Priority: HIGH - Entry point for the CLI and any UI layer
Dependencies: store, core.calculators, reports
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, Dict, List, Optional
import logging

from report_card_builder.config import InstitutionConfig
from report_card_builder.core.calculators.average import student_averages
from report_card_builder.core.calculators.grouping import GroupingLookup
from report_card_builder.core.calculators.ranking import RankingEngine, by_course, everyone
from report_card_builder.core.calculators.siblings import attach_averages, cluster, member_ids
from report_card_builder.core.models import Course, Period, Student
from report_card_builder.exceptions import ReportBuilderError, ReportGenerationError
from report_card_builder.reports import builders
from report_card_builder.reports.builders import Letterhead, report_filename
from report_card_builder.reports.images import PlacedImage, load_image, place_footer
from report_card_builder.reports.renderer import (
    A4_PORTRAIT,
    LETTER_LANDSCAPE,
    LETTER_PORTRAIT,
    Document,
    DocumentRenderer,
)
from report_card_builder.store.base import GradeStore
from report_card_builder.store.grade_filter import CourseBatch, GradeFilter

logger = logging.getLogger(__name__)

ALL_COURSES_LABEL = "Todos los cursos"


@dataclass
class PreparedReport:
    """A Document ready to render, with its file name and non-fatal warnings"""

    kind: str
    filename: str
    document: Document
    warnings: List[str] = field(default_factory=list)


@dataclass
class ReportResult:
    kind: str
    filename: str
    pdf: bytes
    warnings: List[str] = field(default_factory=list)

    def save(self, output_dir: Path) -> Path:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / self.filename
        path.write_bytes(self.pdf)
        return path


@contextmanager
def surfacing_errors():
    """Turn any failure into a single user-facing ReportGenerationError"""
    try:
        yield
    except ReportGenerationError:
        raise
    except ReportBuilderError as e:
        logger.error(f"❌ Report generation failed: {e}")
        raise ReportGenerationError(f"No se pudo generar el PDF: {e.message}", e.detail) from e
    except Exception as e:
        logger.exception("❌ Unexpected error during report generation")
        raise ReportGenerationError(f"No se pudo generar el PDF: {e}") from e


class ReportService:
    """Generate every report type from a GradeStore"""

    def __init__(
        self,
        store: GradeStore,
        config: Optional[InstitutionConfig] = None,
        renderer: Optional[DocumentRenderer] = None,
        issued: Optional[date] = None,
    ):
        self.store = store
        self.config = config or InstitutionConfig()
        self.renderer = renderer or DocumentRenderer()
        self.grade_filter = GradeFilter(store, page_size=self.config.page_size_limit)
        self.issued = issued

        self._builders: Dict[str, Callable[..., PreparedReport]] = {
            "report_card": self.prepare_report_card,
            "report_cards": self.prepare_report_cards,
            "centralizer": self.prepare_internal_centralizer,
            "minedu": self.prepare_minedu_centralizer,
            "ranking": self.prepare_ranking,
            "top3": self.prepare_top_per_course,
            "level": self.prepare_best_of_level,
            "siblings": self.prepare_sibling_list,
            "grade_sheet": self.prepare_grade_sheet,
        }

    @property
    def kinds(self) -> List[str]:
        return list(self._builders)

    # =========================
    # Public entry points
    # =========================

    def prepare(self, kind: str, **params) -> PreparedReport:
        """Build the Document of a report without rendering it"""
        if kind not in self._builders:
            raise ReportGenerationError(f"Tipo de reporte desconocido: {kind}")
        with surfacing_errors():
            return self._builders[kind](**params)

    def generate(self, kind: str, **params) -> ReportResult:
        """
        Build and render a report

        Args:
            kind: One of ``kinds``
            **params: Arguments of the matching prepare_* method

        Returns:
            ReportResult with the PDF bytes and any warnings

        Raises:
            ReportGenerationError: the report could not be produced
        """
        prepared = self.prepare(kind, **params)
        with surfacing_errors():
            pdf = self.renderer.render(prepared.document)
        for warning in prepared.warnings:
            logger.warning(f"⚠️  {warning}")
        return ReportResult(prepared.kind, prepared.filename, pdf, prepared.warnings)

    # =========================
    # Shared lookups
    # =========================

    def _letterhead(self) -> Letterhead:
        logo = load_image(self.config.logo)
        if self.issued:
            return Letterhead(self.config.institution_name, logo, self.issued)
        return Letterhead(self.config.institution_name, logo)

    def _footer(self) -> Optional[PlacedImage]:
        image = load_image(self.config.footer_image)
        if image is None:
            return None
        return place_footer(image, self.config.footer_fit, self.config.footer_height, LETTER_PORTRAIT.width_mm)

    def _course(self, course_code: str) -> Course:
        course = self.store.get_course(course_code)
        if course is None:
            raise ReportGenerationError(f"Curso no encontrado: {course_code}")
        return course

    def _course_names(self, courses: List[Course]) -> Dict[str, str]:
        return {c.code: c.display_name for c in courses}

    def _document(self, sections, page, suffix: Optional[str], title: str) -> Document:
        return Document(
            sections=sections,
            page=page,
            institution_name=self.config.institution_name,
            footer_suffix=suffix,
            title=title,
        )

    # =========================
    # Report cards
    # =========================

    def prepare_report_card(self, student_id: str) -> PreparedReport:
        student = self._find_student(str(student_id))
        course = self._course(student.course_code)
        subjects = self.store.select_subjects(course.code)
        lookup = GroupingLookup.build(subjects, areas=self.store.select_areas())
        records = self.grade_filter.fetch_grades([student.id], [s.code for s in subjects])

        section = builders.build_report_card(
            student, course, subjects, records, lookup, self._letterhead(), self._footer()
        )
        document = self._document([section], LETTER_PORTRAIT, "Boletín de Calificaciones", "Boletín")
        filename = report_filename("report_card", course=course.code, student=f"{student.surname} {student.given_names}")
        return PreparedReport("report_card", filename, document)

    def prepare_report_cards(self, course_code: str) -> PreparedReport:
        """Every active student's report card in one document"""
        course = self._course(course_code)
        students = self.store.select_students(course.code)
        if not students:
            raise ReportGenerationError(f"No hay alumnos activos en el curso {course.display_name}")
        subjects = self.store.select_subjects(course.code)
        lookup = GroupingLookup.build(subjects, areas=self.store.select_areas())
        records = self.grade_filter.fetch_grades([s.id for s in students], [s.code for s in subjects])

        sections = builders.build_report_cards(
            students, course, subjects, records, lookup, self._letterhead(), self._footer()
        )
        logger.info(f"📄 {len(sections)} report cards for {course.display_name}")
        document = self._document(sections, LETTER_PORTRAIT, "Boletín de Calificaciones", "Boletines")
        return PreparedReport("report_cards", report_filename("report_cards", course=course.code), document)

    def _find_student(self, student_id: str) -> Student:
        for student in self.store.select_students(None, active_only=False):
            if student.id == student_id:
                return student
        raise ReportGenerationError(f"Alumno no encontrado: {student_id}")

    # =========================
    # Centralizers
    # =========================

    def _course_data(self, course_code: str, period: Period):
        course = self._course(course_code)
        students = self.store.select_students(course.code)
        subjects = self.store.select_subjects(course.code)
        records = self.grade_filter.fetch_grades([s.id for s in students], [s.code for s in subjects], period)
        return course, students, subjects, records

    def prepare_internal_centralizer(self, course_code: str, period="1") -> PreparedReport:
        period = Period.parse(period)
        course, students, subjects, records = self._course_data(course_code, period)
        section = builders.build_internal_centralizer(course, students, subjects, records, period, self._letterhead())
        document = self._document([section], LETTER_LANDSCAPE, "Centralizador de Calificaciones", "Centralizador")
        return PreparedReport("centralizer", report_filename("centralizer", period, course=course.code), document)

    def prepare_minedu_centralizer(self, course_code: str, period="1") -> PreparedReport:
        period = Period.parse(period)
        course, students, subjects, records = self._course_data(course_code, period)
        rules = self.store.select_grouping_rules(course.code)
        section = builders.build_minedu_centralizer(
            course, students, subjects, rules, records, period, self._letterhead()
        )
        document = self._document([section], LETTER_LANDSCAPE, "Centralizador MINEDU", "Centralizador MINEDU")
        return PreparedReport("minedu", report_filename("minedu", period, course=course.code), document)

    # =========================
    # Rankings
    # =========================

    def _ranked_population(self, period: Period, course_code: Optional[str] = None):
        if course_code is not None:
            # one course: a failed read aborts the report instead of being skipped
            course = self._course(course_code)
            students = self.store.select_students(course.code)
            subjects = self.store.select_subjects(course.code)
            records = self.grade_filter.fetch_grades(
                [s.id for s in students], [s.code for s in subjects], period
            ) if students else []
            courses = [course]
            batch = CourseBatch(students=students, records=records)
        else:
            courses = self.store.select_courses()
            batch = self.grade_filter.fetch_course_grades(courses, period)
        averages = student_averages(batch.records, [s.id for s in batch.students], period)
        return courses, batch, averages

    def prepare_ranking(self, period="FINAL", course_code: Optional[str] = None, top_n: Optional[int] = None) -> PreparedReport:
        """Ranking of one course, or of every course together"""
        period = Period.parse(period)
        courses, batch, averages = self._ranked_population(period, course_code)
        engine = RankingEngine()

        if course_code is not None:
            rankings = engine.rank(batch.students, averages, by_course, top_n=top_n)
            entries = rankings.get(courses[0].code, [])
            label = courses[0].display_name
        else:
            rankings = engine.rank(batch.students, averages, everyone, top_n=top_n)
            entries = next(iter(rankings.values()), [])
            label = ALL_COURSES_LABEL

        for line in engine.get_ranking_log():
            logger.debug(line)

        section = builders.build_ranking(
            entries, period, label, self._letterhead(), self._course_names(courses), notes=batch.warnings
        )
        document = self._document([section], A4_PORTRAIT, None, "Ranking")
        filename = report_filename("ranking", period, course=course_code or "")
        return PreparedReport("ranking", filename, document, batch.warnings)

    def prepare_top_per_course(self, period="FINAL", top_n: int = 3) -> PreparedReport:
        period = Period.parse(period)
        courses, batch, averages = self._ranked_population(period)
        rankings = RankingEngine().top_per_course(batch.students, averages, top_n=top_n, courses=courses)
        sections = builders.build_top_per_course(rankings, courses, period, self._letterhead(), notes=batch.warnings)
        if not sections:
            raise ReportGenerationError("No hay cursos registrados")
        document = self._document(sections, A4_PORTRAIT, None, "Mejores alumnos por curso")
        return PreparedReport("top3", report_filename("top3", period), document, batch.warnings)

    def prepare_best_of_level(self, period="FINAL", top_n: Optional[int] = None) -> PreparedReport:
        period = Period.parse(period)
        courses, batch, averages = self._ranked_population(period)
        rankings = RankingEngine().best_of_level(batch.students, averages, courses, top_n=top_n)
        section = builders.build_best_of_level(
            rankings, period, self._letterhead(), self._course_names(courses), notes=batch.warnings
        )
        document = self._document([section], A4_PORTRAIT, None, "Mejores alumnos por nivel")
        return PreparedReport("level", report_filename("level", period), document, batch.warnings)

    # =========================
    # Siblings and grade sheets
    # =========================

    def prepare_sibling_list(self, period="FINAL") -> PreparedReport:
        """Families first, then grades only for their members"""
        period = Period.parse(period)
        min_size = self.config.sibling_min_size
        courses = self.store.select_courses()
        families = cluster(self.store.select_students(None), min_size, self._course_names(courses))

        ids = member_ids(families)
        records = self.grade_filter.fetch_grades(ids, None, period) if ids else []
        families = attach_averages(families, student_averages(records, ids, period))

        section = builders.build_sibling_list(families, period, self._letterhead(), min_size)
        document = self._document(
            [section], LETTER_PORTRAIT, f"Alumnos con {min_size} o más hermanos", "Lista de hermanos"
        )
        return PreparedReport("siblings", report_filename("siblings", period, min_siblings=min_size), document)

    def prepare_grade_sheet(self, course_code: str, subject_code: str, period="1", teacher_name: str = "") -> PreparedReport:
        period = Period.parse(period)
        course = self._course(course_code)
        subject = next((s for s in self.store.select_subjects(course.code) if s.code == str(subject_code)), None)
        if subject is None:
            raise ReportGenerationError(f"Materia no encontrada: {subject_code}")
        students = self.store.select_students(course.code)
        records = self.grade_filter.fetch_grades([s.id for s in students], [subject.code], period)

        section = builders.build_grade_sheet(course, subject, students, records, period, self._letterhead(), teacher_name)
        document = self._document([section], LETTER_PORTRAIT, "Entrega de Notas", "Entrega de notas")
        return PreparedReport("grade_sheet", report_filename("grade_sheet", period, subject=subject.code), document)
