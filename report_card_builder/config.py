"""
config.py

- Institution settings consumed read-only by every report.
- pydantic v2 / pydantic-settings v2: environment variables with the REPORTS_
  prefix, optionally layered under a JSON file exported from the school app.
- Footer fit values also accept the Spanish names stored by the school app
  (proporcional, altura_fija, ancho_completo).
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union
import json
import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from report_card_builder.exceptions import ReportBuilderError

logger = logging.getLogger(__name__)

DEFAULT_INSTITUTION = "U.E. Plena María Goretti II"


class FooterFit(str, Enum):
    """How the footer image is fitted into the bottom of a report card"""

    PROPORTIONAL = "proportional"
    FIXED_HEIGHT = "fixed-height"
    FULL_WIDTH = "full-width"

    @classmethod
    def parse(cls, value: Union["FooterFit", str]) -> "FooterFit":
        if isinstance(value, FooterFit):
            return value
        text = str(value).strip().lower()
        aliases = {
            "proporcional": cls.PROPORTIONAL,
            "altura_fija": cls.FIXED_HEIGHT,
            "fixed_height": cls.FIXED_HEIGHT,
            "ancho_completo": cls.FULL_WIDTH,
            "full_width": cls.FULL_WIDTH,
        }
        if text in aliases:
            return aliases[text]
        return cls(text)


class InstitutionConfig(BaseSettings):
    """Institution name, images and layout knobs"""

    model_config = SettingsConfigDict(env_prefix="REPORTS_", extra="ignore")

    # =========================
    # Institution
    # =========================
    institution_name: str = DEFAULT_INSTITUTION
    # Path, http(s) URL or data URI
    logo: Optional[str] = None

    # =========================
    # Report card footer
    # =========================
    footer_image: Optional[str] = None
    footer_height: int = Field(80, ge=30, le=200)
    footer_fit: FooterFit = FooterFit.PROPORTIONAL

    # =========================
    # Data / output
    # =========================
    page_size_limit: int = Field(1000, ge=1)
    sibling_min_size: int = Field(3, ge=1)
    output_dir: Path = Path("output")

    @field_validator("footer_fit", mode="before")
    @classmethod
    def _parse_fit(cls, v):
        return FooterFit.parse(v)

    @field_validator("logo", "footer_image", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


def load_config(path: Optional[Union[str, Path]] = None, **overrides) -> InstitutionConfig:
    """
    Build the configuration from environment, an optional JSON file and overrides

    Explicit overrides beat the JSON file, which beats REPORTS_* variables.
    """
    values = {}
    if path is not None:
        path = Path(path)
        try:
            values = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ReportBuilderError(f"No se pudo leer la configuración {path}", str(e)) from e
        logger.info(f"Configuration loaded from {path}")
    values.update({k: v for k, v in overrides.items() if v is not None})
    return InstitutionConfig(**values)
