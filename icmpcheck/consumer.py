"""Metric sink abstraction and bundled consumers."""

import json
import logging
from typing import Protocol, TextIO

from icmpcheck.models import MetricBatch

logger = logging.getLogger(__name__)


class MetricsConsumer(Protocol):
    """Protocol for the external consumer of finished metric batches."""

    def consume(self, batch: MetricBatch) -> None:
        """Receive one sweep's batch. Raise on failure; no retry is made."""
        ...


class LoggingConsumer:
    """Consumer that logs a one-line summary per series."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def consume(self, batch: MetricBatch) -> None:
        for series in batch:
            values = [p.value for p in series.points]
            if values:
                logger.log(
                    self.level,
                    "Series %s: points=%d, min=%.3f, max=%.3f %s",
                    series.name,
                    len(values),
                    min(values),
                    max(values),
                    series.unit,
                )
            else:
                logger.log(self.level, "Series %s: points=0", series.name)


class JsonLinesConsumer:
    """Consumer that writes one JSON object per data point to a text stream."""

    def __init__(self, stream: TextIO):
        self.stream = stream

    def consume(self, batch: MetricBatch) -> None:
        lines = []
        for series in batch:
            for point in series.points:
                record = {
                    "name": series.name,
                    "unit": series.unit,
                    "value": point.value,
                    "timestamp": point.timestamp.isoformat(),
                    "attributes": dict(point.attributes),
                }
                lines.append(json.dumps(record, sort_keys=True))

        # Write the sweep in one go
        if lines:
            self.stream.write("\n".join(lines) + "\n")
        self.stream.flush()
