from .point import FIELD_NAMES, TimeSeriesPoint
from .store import DurableWriteResult, TimeSeriesStore

__all__ = ["FIELD_NAMES", "TimeSeriesPoint", "DurableWriteResult", "TimeSeriesStore"]
