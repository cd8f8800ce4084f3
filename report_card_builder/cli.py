#!/usr/bin/env python3
"""
REPORT CLI - Generate PDF reports from a directory of CSV exports

Usage:
    report-card-builder --data data/ boletin 1A-PRI
    report-card-builder --data data/ boletines 1A-PRI
    report-card-builder --data data/ centralizador 1A-PRI --period 2
    report-card-builder --data data/ minedu 1A-PRI --period 1
    report-card-builder --data data/ ranking --period FINAL [--course 1A-PRI] [--top 10]
    report-card-builder --data data/ top3 --period 3
    report-card-builder --data data/ nivel --period FINAL
    report-card-builder --data data/ hermanos --period FINAL
    report-card-builder --data data/ notas 1A-PRI MAT --period 1
    report-card-builder --data data/ todo --period 1
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple
import argparse
import logging
import sys

from tqdm import tqdm

from report_card_builder.config import load_config
from report_card_builder.exceptions import ReportBuilderError
from report_card_builder.service import ReportResult, ReportService
from report_card_builder.store.dataframe import DataFrameGradeStore

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Genera boletines, centralizadores y rankings en PDF")
    parser.add_argument("--data", default="data", help="Directorio con los CSV exportados")
    parser.add_argument("--config", default=None, help="Archivo JSON de configuración de la institución")
    parser.add_argument("--output", default=None, help="Directorio de salida (por defecto output_dir de la configuración)")
    parser.add_argument("--verbose", "-v", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("boletin", help="Boletín de un alumno")
    p.add_argument("student_id")

    p = sub.add_parser("boletines", help="Boletines de todo un curso")
    p.add_argument("course")

    for name, help_text in (("centralizador", "Centralizador interno"), ("minedu", "Centralizador MINEDU")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("course")
        p.add_argument("--period", default="1")

    p = sub.add_parser("ranking", help="Ranking de alumnos")
    p.add_argument("--period", default="FINAL")
    p.add_argument("--course", default=None)
    p.add_argument("--top", type=int, default=None)

    p = sub.add_parser("top3", help="Mejores alumnos por curso")
    p.add_argument("--period", default="FINAL")
    p.add_argument("--top", type=int, default=3)

    for name, help_text in (("nivel", "Mejores alumnos por nivel"), ("hermanos", "Lista de hermanos")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--period", default="FINAL")

    p = sub.add_parser("notas", help="Entrega de notas de una materia")
    p.add_argument("course")
    p.add_argument("subject")
    p.add_argument("--period", default="1")
    p.add_argument("--teacher", default="")

    p = sub.add_parser("todo", help="Boletines y centralizadores de todos los cursos")
    p.add_argument("--period", default="1")

    return parser.parse_args(argv)


def requests_for(args: argparse.Namespace) -> List[Tuple[str, dict]]:
    """Map a parsed command to (report kind, parameters) pairs"""
    command = args.command
    if command == "boletin":
        return [("report_card", {"student_id": args.student_id})]
    if command == "boletines":
        return [("report_cards", {"course_code": args.course})]
    if command == "centralizador":
        return [("centralizer", {"course_code": args.course, "period": args.period})]
    if command == "minedu":
        return [("minedu", {"course_code": args.course, "period": args.period})]
    if command == "ranking":
        return [("ranking", {"period": args.period, "course_code": args.course, "top_n": args.top})]
    if command == "top3":
        return [("top3", {"period": args.period, "top_n": args.top})]
    if command == "nivel":
        return [("level", {"period": args.period})]
    if command == "hermanos":
        return [("siblings", {"period": args.period})]
    if command == "notas":
        return [(
            "grade_sheet",
            {"course_code": args.course, "subject_code": args.subject, "period": args.period, "teacher_name": args.teacher},
        )]
    raise ValueError(f"Unknown command: {command}")


def run_batch(service: ReportService, period: str, output_dir: Path) -> Tuple[List[Path], List[str]]:
    """Report cards and both centralizers for every course"""
    # Reduce logging verbosity during batch
    logging.getLogger("weasyprint").setLevel(logging.ERROR)
    logging.getLogger("fontTools").setLevel(logging.ERROR)

    written: List[Path] = []
    errors: List[str] = []
    courses = service.store.select_courses()
    jobs = [
        (kind, {"course_code": c.code, **({"period": period} if kind != "report_cards" else {})})
        for c in courses
        for kind in ("report_cards", "centralizer", "minedu")
    ]
    for kind, params in tqdm(jobs, desc="Generando reportes", unit="pdf"):
        try:
            result = service.generate(kind, **params)
        except ReportBuilderError as e:
            errors.append(f"{kind} {params['course_code']}: {e.message}")
            continue
        written.append(result.save(output_dir))
    return written, errors


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("weasyprint").setLevel(logging.ERROR)

    try:
        config = load_config(args.config, output_dir=args.output)
        store = DataFrameGradeStore.from_csv_dir(args.data, max_page_size=config.page_size_limit)
    except ReportBuilderError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    service = ReportService(store, config)
    output_dir = Path(config.output_dir)

    if args.command == "todo":
        written, errors = run_batch(service, args.period, output_dir)
        print(f"\n✅ {len(written)} reportes generados en {output_dir}")
        for error in errors:
            print(f"❌ {error}", file=sys.stderr)
        return 1 if errors else 0

    for kind, params in requests_for(args):
        try:
            result: ReportResult = service.generate(kind, **params)
        except ReportBuilderError as e:
            print(f"ERROR: {e.message}", file=sys.stderr)
            return 1
        path = result.save(output_dir)
        print(f"✅ {path}")
        for warning in result.warnings:
            print(f"⚠️  {warning}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
