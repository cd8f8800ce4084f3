"""PDF reports: images, builders and the WeasyPrint renderer"""

from report_card_builder.reports.builders import (
    Letterhead,
    build_best_of_level,
    build_grade_sheet,
    build_internal_centralizer,
    build_minedu_centralizer,
    build_ranking,
    build_report_card,
    build_report_cards,
    build_sibling_list,
    build_top_per_course,
    report_filename,
)
from report_card_builder.reports.images import LoadedImage, PlacedImage, fit_footer_image, load_image
from report_card_builder.reports.renderer import (
    A4_PORTRAIT,
    LETTER_LANDSCAPE,
    LETTER_PORTRAIT,
    Document,
    DocumentRenderer,
    PageSetup,
    ReportSection,
)

__all__ = [
    "Letterhead",
    "build_best_of_level",
    "build_grade_sheet",
    "build_internal_centralizer",
    "build_minedu_centralizer",
    "build_ranking",
    "build_report_card",
    "build_report_cards",
    "build_sibling_list",
    "build_top_per_course",
    "report_filename",
    "LoadedImage",
    "PlacedImage",
    "fit_footer_image",
    "load_image",
    "A4_PORTRAIT",
    "LETTER_LANDSCAPE",
    "LETTER_PORTRAIT",
    "Document",
    "DocumentRenderer",
    "PageSetup",
    "ReportSection",
]
