"""
StateChangeTracker: turns a boolean signal sampled every poll into one annotation per transition.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from poolmon.plugins.annotations.service import Annotation

PUMP_STATE_CATEGORY = "pump_state_change"


class StateChangeTracker:
    """Two-state (On/Off) tracker with an unknown initial state.

    The first observed value counts as a transition out of the unknown state.
    Annotations are handed to `sink`; a failing sink is logged and does not
    stop the tracker from recording the new state.
    """

    def __init__(
        self,
        sink: Optional[Callable[[Annotation], Any]] = None,
        label: str = "Filter Pump",
        component: str = "filter_pump",
        category: str = PUMP_STATE_CATEGORY,
    ):
        self.sink = sink
        self.label = label
        self.component = component
        self.category = category
        self.logger = logging.getLogger(self.__class__.__name__)
        self._state: Optional[bool] = None
        self._lock = threading.Lock()

    def get_current_state(self) -> Optional[bool]:
        return self._state

    def reset(self) -> None:
        with self._lock:
            self._state = None

    def check_state_change(self, new_value: bool, timestamp: Optional[datetime] = None) -> Optional[Annotation]:
        """Record new_value; return the emitted Annotation, or None when unchanged."""
        if new_value is None:
            return None
        new_value = bool(new_value)
        with self._lock:
            previous = self._state
            if previous == new_value:
                return None
            self._state = new_value

        annotation = self._build(previous, new_value, timestamp or datetime.now(timezone.utc))
        self.logger.info(f"{self.label} turned {'ON' if new_value else 'OFF'} at {annotation.timestamp.isoformat()}")
        if self.sink is not None:
            try:
                self.sink(annotation)
            except Exception as e:
                self.logger.error(f"Failed to store {self.category} annotation: {e}")
        return annotation

    def _build(self, previous: Optional[bool], new_value: bool, timestamp: datetime) -> Annotation:
        word = "ON" if new_value else "OFF"
        return Annotation(
            timestamp=timestamp,
            category=self.category,
            title=f"{self.label} {word}",
            description=f"{self.label} turned {word.lower()}",
            metadata={
                "change_type": "turned_on" if new_value else "turned_off",
                "previous_state": previous,
                "new_state": new_value,
                "source": "automatic_detection",
                "component": self.component,
            },
        )
