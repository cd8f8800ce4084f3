"""
Report Card Builder

Grade aggregation, ranking and report layout engine for school records:
report cards (boletines), internal and MINEDU centralizers, rankings and
sibling lists rendered to PDF.
"""

__version__ = "1.0.0"
