"""Conversion of probe results into per-sweep metric batches."""

import logging
from datetime import timedelta

from icmpcheck.models import (
    ATTR_PEER_IP,
    ATTR_PEER_NAME,
    METRIC_LOSS_RATIO,
    METRIC_RTT,
    METRIC_RTT_AVG,
    METRIC_RTT_MAX,
    METRIC_RTT_MIN,
    METRIC_RTT_STDDEV,
    MetricBatch,
    ProbeResult,
)

logger = logging.getLogger(__name__)

_ONE_MS = timedelta(milliseconds=1)


def to_milliseconds(duration: timedelta) -> float:
    """Convert a duration to fractional milliseconds."""
    return duration / _ONE_MS


class SweepAggregator:
    """Accumulates probe results of one sweep into a MetricBatch.

    One aggregator serves exactly one sweep. build() seals it and hands out
    the batch; further use raises RuntimeError.
    """

    def __init__(self):
        self._batch = MetricBatch.empty()
        self._sealed = False
        self._results = 0

    def add_result(self, result: ProbeResult) -> None:
        """Append the points of one target's probe result.

        Adds one ping.rtt point per received packet, in arrival order, and
        one point per statistic series sharing the session timestamp.
        """
        if self._sealed:
            raise RuntimeError("aggregator already built")

        stats = result.stats

        rtt_series = self._batch[METRIC_RTT]
        for packet in result.packets:
            rtt_series.append(
                to_milliseconds(packet.rtt),
                packet.timestamp,
                {ATTR_PEER_IP: packet.source_address, ATTR_PEER_NAME: stats.display_address},
            )

        stats_attributes = {
            ATTR_PEER_IP: stats.resolved_address,
            ATTR_PEER_NAME: stats.display_address,
        }
        stats_values = (
            (METRIC_RTT_MIN, to_milliseconds(stats.min_rtt)),
            (METRIC_RTT_MAX, to_milliseconds(stats.max_rtt)),
            (METRIC_RTT_AVG, to_milliseconds(stats.avg_rtt)),
            (METRIC_RTT_STDDEV, to_milliseconds(stats.stddev_rtt)),
            (METRIC_LOSS_RATIO, stats.packet_loss_ratio),
        )
        for name, value in stats_values:
            self._batch[name].append(value, result.stats_timestamp, stats_attributes)

        self._results += 1
        logger.debug(
            "Result aggregated: target=%s, packets=%d, loss=%.3f",
            stats.display_address,
            len(result.packets),
            stats.packet_loss_ratio,
        )

    def build(self) -> MetricBatch:
        """Seal the aggregator and return the fully populated batch."""
        if self._sealed:
            raise RuntimeError("aggregator already built")

        self._sealed = True
        logger.debug(
            "Batch built: results=%d, points=%d", self._results, self._batch.point_count
        )
        return self._batch
