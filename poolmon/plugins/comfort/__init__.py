from .analyzer import analyze_points, analyze_window, classify_comfort, classify_humidity

__all__ = ["analyze_points", "analyze_window", "classify_comfort", "classify_humidity"]
