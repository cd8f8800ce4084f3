"""
Exception hierarchy for report generation.

Everything the core raises derives from ReportBuilderError so the thin UI layer
can catch one type and show ``error.message`` to the user.
"""

from typing import Optional


class ReportBuilderError(Exception):
    """Base error for the report builder"""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


class GradeStoreError(ReportBuilderError):
    """A read from the Grade Store failed"""


class ImageLoadError(ReportBuilderError):
    """A logo or footer image could not be fetched or decoded"""


class ReportGenerationError(ReportBuilderError):
    """Report generation aborted; ``message`` is safe to show to the user"""
