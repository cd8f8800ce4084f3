#!/usr/bin/env python3
"""
SCORING POLICIES - Rounding and pass/fail banding for displayed grades

Two conventions coexist for what is conceptually the same grade:

✅ ContinuousScorePolicy: two decimals, bands 0-49.00 / 49.01-50.99 / 51.00-100
✅ RegulatoryIntegerScorePolicy: integers (MINEDU), bands 0-49 / 50 / 51-100

Each report type names the policy it uses. Nothing infers it from the data.

ROUNDING:
Half away from zero, applied on the decimal representation of the float so
that 2.675 rounds to 2.68 (binary float rounding would give 2.67).
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional, Tuple


def round_half_away(value: float, digits: int = 2) -> float:
    """Round half away from zero to ``digits`` decimals"""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


class GradeBand(str, Enum):
    """Pass/fail band of a displayed score"""

    FAILING = "Reprobado"
    INCONCLUSIVE = "No Concluyente"
    PASSING = "Aprobado"

    @property
    def color(self) -> Optional[str]:
        """Text colour, None keeps the default (black)"""
        return {
            GradeBand.FAILING: "#ff0000",
            GradeBand.INCONCLUSIVE: "#f59e0b",
            GradeBand.PASSING: None,
        }[self]

    @property
    def css_class(self) -> str:
        return {
            GradeBand.FAILING: "nota-reprobado",
            GradeBand.INCONCLUSIVE: "nota-no-concluyente",
            GradeBand.PASSING: "nota-aprobado",
        }[self]


@dataclass(frozen=True)
class LegendEntry:
    text: str
    band: GradeBand


class ScorePolicy:
    """Base policy: how a score is rounded, formatted and banded"""

    name = "base"
    digits = 2

    def round(self, value: float) -> float:
        return round_half_away(value, self.digits)

    def format(self, value: Optional[float], empty: str = "-") -> str:
        if value is None:
            return empty
        return f"{self.round(value):.{self.digits}f}"

    def band(self, value: float) -> GradeBand:
        raise NotImplementedError

    def css_class(self, value: Optional[float]) -> str:
        """CSS class for a table cell; empty for missing values"""
        if value is None:
            return ""
        return self.band(value).css_class

    def legend(self) -> List[LegendEntry]:
        raise NotImplementedError


class ContinuousScorePolicy(ScorePolicy):
    """Two-decimal scores used by report cards, internal centralizers and rankings"""

    name = "continuous"
    digits = 2

    def band(self, value: float) -> GradeBand:
        score = self.round(value)
        if score <= 49.0:
            return GradeBand.FAILING
        if score <= 50.99:
            return GradeBand.INCONCLUSIVE
        return GradeBand.PASSING

    def legend(self) -> List[LegendEntry]:
        return [
            LegendEntry("0-49,00: Reprobado", GradeBand.FAILING),
            LegendEntry("49,01-50,99: No Concluyente", GradeBand.INCONCLUSIVE),
            LegendEntry("51,00-100,00: Aprobado", GradeBand.PASSING),
        ]


class RegulatoryIntegerScorePolicy(ScorePolicy):
    """Integer-rounded scores used by the ministry (MINEDU) centralizer"""

    name = "regulatory-integer"
    digits = 0

    def round(self, value: float) -> float:
        return round_half_away(value, 0)

    def format(self, value: Optional[float], empty: str = "-") -> str:
        if value is None:
            return empty
        return str(int(self.round(value)))

    def band(self, value: float) -> GradeBand:
        score = self.round(value)
        if score <= 49:
            return GradeBand.FAILING
        if score == 50:
            return GradeBand.INCONCLUSIVE
        return GradeBand.PASSING

    def legend(self) -> List[LegendEntry]:
        return [
            LegendEntry("0-49: Reprobado", GradeBand.FAILING),
            LegendEntry("50: No Concluyente", GradeBand.INCONCLUSIVE),
            LegendEntry("51-100: Aprobado", GradeBand.PASSING),
        ]


CONTINUOUS = ContinuousScorePolicy()
REGULATORY_INTEGER = RegulatoryIntegerScorePolicy()

# Performance scale printed in the report card header
PERFORMANCE_SCALE: List[Tuple[str, GradeBand]] = [
    ("No Satisfactorio: 0 - 50", GradeBand.FAILING),
    ("Satisfactorio: 51 - 79", GradeBand.INCONCLUSIVE),
    ("Óptimo: 80 - 100", GradeBand.PASSING),
]
