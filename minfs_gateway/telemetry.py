"""Observability scaffolding.

Metrics and events are kept in bounded ring buffers; the oldest entries are
dropped once ``ObservabilityConfig.max_buffered`` is reached.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, List

from .config import ObservabilityConfig
from .models import ObservabilityEvent


@dataclass
class TelemetryCollector:
    config: ObservabilityConfig
    metrics: Deque[Dict[str, object]] = field(init=False)
    events: Deque[ObservabilityEvent] = field(init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        capacity = max(1, self.config.max_buffered)
        self.metrics = deque(maxlen=capacity)
        self.events = deque(maxlen=capacity)

    def emit_metric(self, name: str, value: float, labels: Dict[str, str] | None = None) -> None:
        payload = {
            "name": name,
            "value": value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **(labels or {}),
        }
        with self._lock:
            self.metrics.append(payload)

    def emit_event(self, message: str, attributes: Dict[str, str] | None = None) -> None:
        with self._lock:
            self.events.append(ObservabilityEvent(event_type="custom", message=message, attributes=attributes))

    def metrics_named(self, name: str) -> List[Dict[str, object]]:
        with self._lock:
            return [metric for metric in self.metrics if metric["name"] == name]

    def events_named(self, message: str) -> List[ObservabilityEvent]:
        with self._lock:
            return [event for event in self.events if event.message == message]

    def flush(self) -> None:
        with self._lock:
            self.metrics.clear()
            self.events.clear()
