import pytest

from poolmon.plugins.comfort.analyzer import (
    analyze_points,
    analyze_window,
    classify_comfort,
    classify_humidity,
)
from poolmon.plugins.timeseries.point import TimeSeriesPoint


class TestClassifyComfort:
    @pytest.mark.parametrize(
        "temperature,humidity,expected",
        [
            (72, 45, "comfortable"),
            (85, 45, "hot"),
            (65, 45, "cold"),
            (72, 70, "humid"),
            (72, 25, "dry"),
            (None, 45, "unknown"),
            (72, None, "unknown"),
            (68, 30, "comfortable"),
            (78, 60, "comfortable"),
            (76, 65, "hot"),
            (65, 80, "cold"),
        ],
    )
    def test_categories(self, temperature, humidity, expected):
        assert classify_comfort(temperature, humidity) == expected

    def test_hot_rule_wins_over_humid(self):
        # 77°F at 70% is both warm-and-muggy and humid; the hot rule is checked first
        assert classify_comfort(77, 70) == "hot"


class TestClassifyHumidity:
    @pytest.mark.parametrize(
        "humidity,expected",
        [(None, "unknown"), (10, "low"), (30, "normal"), (60, "normal"), (65, "high"), (70, "high"), (71, "very_high")],
    )
    def test_levels(self, humidity, expected):
        assert classify_humidity(humidity) == expected


class TestAnalyzeWindow:
    def test_empty_window_is_unknown(self):
        analysis = analyze_window([])
        assert analysis.overall_comfort == "unknown"
        assert analysis.recommendations == []
        assert analysis.data_points == 0
        assert analysis.distribution["comfortable"] == {"count": 0, "percentage": 0}

    def test_plurality_and_recommendation(self):
        readings = [(85, 45)] * 4 + [(72, 45)] * 3 + [(65, 45)] * 3
        analysis = analyze_window(readings)
        assert analysis.overall_comfort == "hot"
        assert analysis.distribution["hot"] == {"count": 4, "percentage": 40}
        assert analysis.recommendations == ["Consider reducing temperature or improving ventilation"]

    def test_tie_resolved_by_precedence(self):
        readings = [(72, 45), (72, 45), (85, 45), (85, 45)]
        assert analyze_window(readings).overall_comfort == "comfortable"

        readings = [(65, 45), (65, 45), (72, 70), (72, 70)]
        assert analyze_window(readings).overall_comfort == "cold"

    def test_only_marginal_or_unknown_readings(self):
        analysis = analyze_window([(None, 50), (None, None)])
        assert analysis.overall_comfort == "unknown"
        assert analysis.distribution["unknown"]["percentage"] == 100

    def test_exactly_thirty_percent_gets_no_recommendation(self):
        readings = [(72, 25)] * 3 + [(72, 45)] * 7
        assert analyze_window(readings).recommendations == []

    def test_several_recommendations(self):
        readings = [(72, 70)] * 2 + [(72, 20)] * 2 + [(72, 45)]
        analysis = analyze_window(readings)
        assert analysis.recommendations == [
            "Consider using a dehumidifier or improving air circulation",
            "Consider using a humidifier to increase moisture levels",
        ]


def test_analyze_points_uses_ambient_fields():
    points = [
        TimeSeriesPoint(timestamp=None, ambient_temp=72, ambient_humidity=45, water_temp=90),
        TimeSeriesPoint(timestamp=None, ambient_temp=73, ambient_humidity=50),
    ]
    analysis = analyze_points(points)
    assert analysis.overall_comfort == "comfortable"
    assert analysis.data_points == 2
