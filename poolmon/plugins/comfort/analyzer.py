"""
Comfort classification for a (temperature °F, relative humidity %) pair and
aggregate analysis over a window of readings.
"""
from collections import namedtuple
from typing import Dict, Iterable, List, Optional, Tuple

COMFORTABLE = "comfortable"
HOT = "hot"
COLD = "cold"
HUMID = "humid"
DRY = "dry"
MARGINAL = "marginal"
UNKNOWN = "unknown"

ALL_CATEGORIES = (COMFORTABLE, HOT, COLD, HUMID, DRY, MARGINAL, UNKNOWN)
# Candidates for the overall verdict, in tie-break order
OVERALL_PRECEDENCE = (COMFORTABLE, HOT, COLD, HUMID, DRY)

RECOMMENDATION_THRESHOLD = 0.3
RECOMMENDATIONS = {
    HOT: "Consider reducing temperature or improving ventilation",
    COLD: "Consider increasing temperature or adding insulation",
    HUMID: "Consider using a dehumidifier or improving air circulation",
    DRY: "Consider using a humidifier to increase moisture levels",
}

ComfortAnalysis = namedtuple(
    "ComfortAnalysis",
    [
        "overall_comfort",   # one of OVERALL_PRECEDENCE or "unknown"
        "distribution",      # category -> {"count": int, "percentage": int}
        "recommendations",   # list of str
        "data_points",       # int
    ],
)


def classify_comfort(temperature: Optional[float], humidity: Optional[float]) -> str:
    if temperature is None or humidity is None:
        return UNKNOWN
    if 68 <= temperature <= 78 and 30 <= humidity <= 60:
        return COMFORTABLE
    if temperature > 78 or (temperature > 75 and humidity > 60):
        return HOT
    if temperature < 68:
        return COLD
    if humidity > 60:
        return HUMID
    if humidity < 30:
        return DRY
    return MARGINAL


def classify_humidity(humidity: Optional[float]) -> str:
    if humidity is None:
        return UNKNOWN
    if humidity < 30:
        return "low"
    if humidity <= 60:
        return "normal"
    if humidity <= 70:
        return "high"
    return "very_high"


def _overall(counts: Dict[str, int]) -> str:
    best = max(counts[c] for c in OVERALL_PRECEDENCE)
    if best == 0:
        return UNKNOWN
    # first category in precedence order holding the maximum count
    return next(c for c in OVERALL_PRECEDENCE if counts[c] == best)


def analyze_window(readings: Iterable[Tuple[Optional[float], Optional[float]]]) -> ComfortAnalysis:
    """Classify each (temperature, humidity) reading and summarize the window.

    Percentages are whole numbers. A recommendation is emitted for each of
    hot/cold/humid/dry that covers more than 30% of the readings.
    """
    counts = {category: 0 for category in ALL_CATEGORIES}
    total = 0
    for temperature, humidity in readings:
        counts[classify_comfort(temperature, humidity)] += 1
        total += 1

    distribution = {
        category: {
            "count": count,
            "percentage": int(count * 100 / total + 0.5) if total else 0,
        }
        for category, count in counts.items()
    }
    recommendations: List[str] = [
        text for category, text in RECOMMENDATIONS.items()
        if counts[category] > total * RECOMMENDATION_THRESHOLD
    ]
    return ComfortAnalysis(_overall(counts), distribution, recommendations, total)


def analyze_points(points, temperature_field: str = "ambient_temp", humidity_field: str = "ambient_humidity") -> ComfortAnalysis:
    """analyze_window over TimeSeriesPoint-like records."""
    return analyze_window(
        (getattr(p, temperature_field, None), getattr(p, humidity_field, None)) for p in points
    )
