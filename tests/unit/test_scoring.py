"""
Unit Tests for Score Policies

Tests for:
- Continuous (two-decimal) banding
- Regulatory integer (MINEDU) banding
- Formatting and CSS classes
- Legends
"""

import pytest

from report_card_builder.core.scoring import (
    CONTINUOUS,
    PERFORMANCE_SCALE,
    REGULATORY_INTEGER,
    GradeBand,
)


class TestContinuousPolicy:
    """Tests for ContinuousScorePolicy"""

    @pytest.mark.parametrize(
        "score,band",
        [
            (0, GradeBand.FAILING),
            (49, GradeBand.FAILING),
            (49.0, GradeBand.FAILING),
            (49.01, GradeBand.INCONCLUSIVE),
            (50, GradeBand.INCONCLUSIVE),
            (50.99, GradeBand.INCONCLUSIVE),
            (51, GradeBand.PASSING),
            (100, GradeBand.PASSING),
        ],
    )
    def test_bands(self, score, band):
        assert CONTINUOUS.band(score) is band

    def test_band_uses_rounded_score(self):
        """49.004 displays as 49.00 and must colour as failing"""
        assert CONTINUOUS.band(49.004) is GradeBand.FAILING
        assert CONTINUOUS.band(50.995) is GradeBand.PASSING

    def test_format(self):
        assert CONTINUOUS.format(60) == "60.00"
        assert CONTINUOUS.format(72.625) == "72.63"
        assert CONTINUOUS.format(None) == "-"

    def test_css_class(self):
        assert CONTINUOUS.css_class(49) == "nota-reprobado"
        assert CONTINUOUS.css_class(50) == "nota-no-concluyente"
        assert CONTINUOUS.css_class(80) == "nota-aprobado"
        assert CONTINUOUS.css_class(None) == ""

    def test_legend(self):
        texts = [entry.text for entry in CONTINUOUS.legend()]
        assert texts == ["0-49,00: Reprobado", "49,01-50,99: No Concluyente", "51,00-100,00: Aprobado"]


class TestRegulatoryIntegerPolicy:
    """Tests for RegulatoryIntegerScorePolicy"""

    @pytest.mark.parametrize(
        "score,band",
        [
            (49, GradeBand.FAILING),
            (49.4, GradeBand.FAILING),
            (49.5, GradeBand.INCONCLUSIVE),
            (50, GradeBand.INCONCLUSIVE),
            (50.4, GradeBand.INCONCLUSIVE),
            (50.5, GradeBand.PASSING),
            (51, GradeBand.PASSING),
        ],
    )
    def test_bands(self, score, band):
        assert REGULATORY_INTEGER.band(score) is band

    def test_policies_differ_at_fifty_point_five(self):
        """Same grade, different band depending on the report type"""
        assert CONTINUOUS.band(50.5) is GradeBand.INCONCLUSIVE
        assert REGULATORY_INTEGER.band(50.5) is GradeBand.PASSING

    def test_format_is_integer(self):
        assert REGULATORY_INTEGER.format(49.5) == "50"
        assert REGULATORY_INTEGER.format(75) == "75"
        assert REGULATORY_INTEGER.format(None) == "-"

    def test_legend(self):
        texts = [entry.text for entry in REGULATORY_INTEGER.legend()]
        assert texts == ["0-49: Reprobado", "50: No Concluyente", "51-100: Aprobado"]


class TestGradeBand:
    """Tests for band colours"""

    def test_colors(self):
        assert GradeBand.FAILING.color == "#ff0000"
        assert GradeBand.INCONCLUSIVE.color == "#f59e0b"
        assert GradeBand.PASSING.color is None

    def test_performance_scale(self):
        assert [text for text, _ in PERFORMANCE_SCALE] == [
            "No Satisfactorio: 0 - 50",
            "Satisfactorio: 51 - 79",
            "Óptimo: 80 - 100",
        ]
