#!/usr/bin/env python3
"""
DOCUMENT RENDERER - Paginated PDF output for every report type

GENERATION PROCESS:
1. Each report section renders its own Jinja2 template
2. Sections are concatenated with forced page breaks between them
3. Page size, orientation and the "Página N de M" footer line are set by @page
4. WeasyPrint converts the HTML to PDF; long tables paginate on their own
   and repeat their header row on every page

FEATURES:
✅ Letter portrait, letter/custom landscape and A4 portrait page setups
✅ Score colouring from the report's score policy
✅ Gold/silver/bronze row tints for the top three
✅ Logo header and footer image or signature lines

Priority: HIGH - Every report ends here
Dependencies: Jinja2, WeasyPrint
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import logging
import re

from jinja2 import Environment, FileSystemLoader, select_autoescape

from report_card_builder.core.scoring import CONTINUOUS, ScorePolicy
from report_card_builder.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
STYLESHEET = "reports.css"

# Portrait (width, height) in mm
PAGE_DIMENSIONS: Dict[str, Tuple[float, float]] = {
    "letter": (215.9, 279.4),
    "a4": (210.0, 297.0),
    "legal": (215.9, 355.6),
}

MARGIN_MM = 15


def format_date(value: Optional[date] = None) -> str:
    """es-ES short date, d/m/yyyy"""
    value = value or date.today()
    return f"{value.day}/{value.month}/{value.year}"


@dataclass
class PageSetup:
    """Paper size and orientation; size is a name or "<w>mm <h>mm" """

    size: str = "letter"
    landscape: bool = False
    margin_mm: float = MARGIN_MM

    def dimensions(self) -> Tuple[float, float]:
        """(width, height) in mm after orientation"""
        name = self.size.strip().lower()
        if name in PAGE_DIMENSIONS:
            width, height = PAGE_DIMENSIONS[name]
        else:
            match = re.fullmatch(r"\s*([\d.]+)mm\s+([\d.]+)mm\s*", self.size)
            if not match:
                raise ValueError(f"Unknown page size: {self.size!r}")
            width, height = float(match.group(1)), float(match.group(2))
            width, height = min(width, height), max(width, height)
        if self.landscape:
            return height, width
        return width, height

    @property
    def width_mm(self) -> float:
        return self.dimensions()[0]

    @property
    def content_width_mm(self) -> float:
        return self.width_mm - 2 * self.margin_mm

    @property
    def css_size(self) -> str:
        width, height = self.dimensions()
        return f"{width:g}mm {height:g}mm"


LETTER_PORTRAIT = PageSetup("letter")
LETTER_LANDSCAPE = PageSetup("letter", landscape=True)
A4_PORTRAIT = PageSetup("A4")


@dataclass
class ReportSection:
    """One logical report: a template plus the data it renders"""

    template: str
    context: Dict[str, Any] = field(default_factory=dict)
    title: str = ""
    policy: ScorePolicy = CONTINUOUS


@dataclass
class Document:
    """Sections sharing one page setup and one page footer line"""

    sections: List[ReportSection]
    page: PageSetup = field(default_factory=PageSetup)
    institution_name: str = ""
    footer_suffix: Optional[str] = None
    title: str = ""

    @property
    def footer_line(self) -> str:
        """Text after "Página N de M - " """
        parts = [p for p in (self.institution_name, self.footer_suffix) if p]
        return " - ".join(parts)


def _css_string(value: Any) -> str:
    """Escape text for a CSS string literal inside a <style> element"""
    text = str(value).replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")
    return text.replace("<", "\\3c ")


def _mm(value: Optional[float]) -> str:
    if value is None:
        return "auto"
    return f"{value:.2f}mm"


class DocumentRenderer:
    """Render Documents to HTML and PDF"""

    def __init__(self, templates_dir: Optional[Path] = None):
        """
        Initialize the renderer

        Args:
            templates_dir: Override for the bundled templates directory
        """
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR

        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["css_string"] = _css_string
        self.env.filters["mm"] = _mm

    def render_section(self, section: ReportSection) -> str:
        """HTML fragment of one section"""
        policy = section.policy

        def score(value, empty="-"):
            return policy.format(value, empty)

        def band(value):
            return policy.css_class(value)

        template = self.env.get_template(section.template)
        return template.render(score=score, band=band, policy=policy, section=section, **section.context)

    def render_html(self, document: Document) -> str:
        """Full HTML document with page breaks between sections"""
        if not document.sections:
            raise ReportGenerationError("No hay datos para generar el reporte")

        bodies = [self.render_section(section) for section in document.sections]
        template = self.env.get_template("document.html")
        return template.render(document=document, bodies=bodies)

    def render(self, document: Document) -> bytes:
        """
        Render a Document to PDF bytes

        Returns:
            PDF file content

        Raises:
            ReportGenerationError: WeasyPrint is unavailable or failed
        """
        html_content = self.render_html(document)

        try:
            from weasyprint import CSS, HTML
        except (ImportError, OSError) as e:
            raise ReportGenerationError("WeasyPrint no está disponible", str(e)) from e

        css_path = self.templates_dir / STYLESHEET
        stylesheets = [CSS(filename=str(css_path))] if css_path.exists() else []
        if not stylesheets:
            logger.warning(f"CSS file not found: {css_path}, generating without stylesheet")

        pdf = HTML(string=html_content, base_url=str(self.templates_dir)).write_pdf(stylesheets=stylesheets)
        logger.info(f"PDF generated with WeasyPrint: {len(document.sections)} sections, {len(pdf)} bytes")
        return pdf

    def write(self, document: Document, output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.render(document))
        logger.info(f"✅ Report written: {output_path}")
        return output_path
