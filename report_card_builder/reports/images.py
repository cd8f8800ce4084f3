#!/usr/bin/env python3
"""
IMAGE HELPERS - Logo and footer images for PDF reports

Images are referenced by path, http(s) URL or data URI, re-encoded to PNG with
Pillow and embedded as base64 data URIs so the HTML renders without network
access. Any failure degrades to "no image" with a warning.

Sizes are millimetres, the unit the report layouts are designed in.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple
import base64
import binascii
import io
import logging

import httpx
from PIL import Image, UnidentifiedImageError

from report_card_builder.config import FooterFit
from report_card_builder.exceptions import ImageLoadError

logger = logging.getLogger(__name__)

# Page geometry (mm)
PAGE_MARGIN = 15
FULL_WIDTH_MAX_HEIGHT = 250

# Logo widths per report layout (mm)
LOGO_WIDTH_REPORT_CARD = 70
LOGO_WIDTH_CENTRALIZER = 75
LOGO_WIDTH_RANKING = 25
LOGO_BOX_PODIUM = (70, 70)


@dataclass(frozen=True)
class LoadedImage:
    """A decoded image ready to embed"""

    data_uri: str
    width: int
    height: int

    @property
    def aspect(self) -> float:
        return self.width / self.height


@dataclass(frozen=True)
class PlacedImage:
    """An image with its printed size in mm"""

    data_uri: str
    width: float
    height: float


def _read_bytes(ref: str, timeout: float) -> bytes:
    if ref.startswith("data:"):
        try:
            _, payload = ref.split(",", 1)
            return base64.b64decode(payload)
        except (ValueError, binascii.Error) as e:
            raise ImageLoadError("Data URI inválido", str(e)) from e

    if ref.startswith(("http://", "https://")):
        try:
            response = httpx.get(ref, timeout=timeout, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageLoadError(f"No se pudo descargar la imagen {ref}", str(e)) from e
        return response.content

    path = Path(ref).expanduser()
    try:
        return path.read_bytes()
    except OSError as e:
        raise ImageLoadError(f"No se pudo leer la imagen {path}", str(e)) from e


def fetch_image(ref: str, timeout: float = 10.0) -> LoadedImage:
    """
    Fetch and decode an image reference

    Raises:
        ImageLoadError: the reference could not be read or decoded
    """
    raw = _read_bytes(ref, timeout)
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA")
            buffer = io.BytesIO()
            img.save(buffer, format="PNG")
            width, height = img.size
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageLoadError("No se pudo decodificar la imagen", str(e)) from e

    if not width or not height:
        raise ImageLoadError("Imagen vacía", ref[:80])

    encoded = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return LoadedImage(data_uri=f"data:image/png;base64,{encoded}", width=width, height=height)


def load_image(ref: Optional[str], timeout: float = 10.0) -> Optional[LoadedImage]:
    """Like fetch_image, but a missing reference or any failure gives None"""
    if not ref:
        return None
    try:
        return fetch_image(ref, timeout)
    except ImageLoadError as e:
        logger.warning(f"⚠️  Image skipped: {e}")
        return None


def scale_to_width(image: LoadedImage, width: float) -> PlacedImage:
    """Fixed width, height from the aspect ratio"""
    return PlacedImage(image.data_uri, width, width / image.aspect)


def bound_to_box(image: LoadedImage, max_width: float, max_height: float) -> PlacedImage:
    """Largest size fitting the box with the aspect ratio preserved"""
    width = max_width
    height = width / image.aspect
    if height > max_height:
        height = max_height
        width = height * image.aspect
    return PlacedImage(image.data_uri, width, height)


def fit_footer_image(
    width: float,
    height: float,
    fit: str,
    target_height: float,
    available_width: float,
    max_height: float = FULL_WIDTH_MAX_HEIGHT,
) -> Tuple[float, float]:
    """
    Printed size of the footer image for a fit mode

    Args:
        width, height: Natural image size (any unit, only the ratio matters)
        fit: "proportional", "fixed-height" or "full-width"
        target_height: Configured footer height
        available_width: Page width minus both margins
        max_height: Height ceiling for full-width images

    Returns:
        (width, height) in the same unit as target_height
    """
    fit = FooterFit.parse(fit)

    if fit is FooterFit.FULL_WIDTH:
        out_w = available_width
        out_h = height * out_w / width
        # Width stays full even when the height is capped
        return out_w, min(out_h, max_height)

    # Proportional and fixed-height share the arithmetic: start from the
    # configured height and shrink to the available width if needed
    out_h = target_height
    out_w = width * out_h / height
    if out_w > available_width:
        out_w = available_width
        out_h = height * out_w / width
    return out_w, out_h


def place_footer(
    image: LoadedImage,
    fit: str,
    target_height: float,
    page_width: float,
    margin: float = PAGE_MARGIN,
) -> PlacedImage:
    w, h = fit_footer_image(image.width, image.height, fit, target_height, page_width - 2 * margin)
    return PlacedImage(image.data_uri, w, h)
