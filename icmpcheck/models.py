"""Data models for icmpcheck probe results and metric batches."""

import statistics
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterator, Mapping, Sequence

ATTR_PEER_IP = "net.peer.ip"
ATTR_PEER_NAME = "net.peer.name"

METRIC_RTT = "ping.rtt"
METRIC_RTT_MIN = "ping.rtt.min"
METRIC_RTT_MAX = "ping.rtt.max"
METRIC_RTT_AVG = "ping.rtt.avg"
METRIC_RTT_STDDEV = "ping.rtt.stddev"
METRIC_LOSS_RATIO = "ping.loss.ratio"

# (name, unit) in emission order
METRIC_SERIES = (
    (METRIC_RTT, "ms"),
    (METRIC_RTT_MIN, "ms"),
    (METRIC_RTT_MAX, "ms"),
    (METRIC_RTT_AVG, "ms"),
    (METRIC_RTT_STDDEV, "ms"),
    (METRIC_LOSS_RATIO, ""),
)


@dataclass(frozen=True)
class Packet:
    """One received ICMP echo reply."""

    timestamp: datetime  # when the reply was observed, not when it was sent
    rtt: timedelta
    source_address: str
    sequence: int = 0


@dataclass(frozen=True)
class Statistics:
    """Session-level summary over all replies of one probe session."""

    packets_sent: int
    packets_received: int
    min_rtt: timedelta
    max_rtt: timedelta
    avg_rtt: timedelta
    stddev_rtt: timedelta
    resolved_address: str
    display_address: str

    @property
    def packet_loss_ratio(self) -> float:
        """Fraction of sent requests without a reply, in [0, 1]."""
        if self.packets_sent <= 0:
            return 0.0
        lost = self.packets_sent - self.packets_received
        return min(1.0, max(0.0, lost / self.packets_sent))

    @classmethod
    def from_rtts(
        cls,
        rtts: Sequence[timedelta],
        packets_sent: int,
        resolved_address: str,
        display_address: str,
    ) -> "Statistics":
        """Compute session statistics from the round-trip times received.

        All RTT statistics are zero when no reply arrived. The standard
        deviation is the population deviation over the received replies.
        """
        if not rtts:
            zero = timedelta(0)
            return cls(
                packets_sent=packets_sent,
                packets_received=0,
                min_rtt=zero,
                max_rtt=zero,
                avg_rtt=zero,
                stddev_rtt=zero,
                resolved_address=resolved_address,
                display_address=display_address,
            )

        seconds = [rtt.total_seconds() for rtt in rtts]
        return cls(
            packets_sent=packets_sent,
            packets_received=len(rtts),
            min_rtt=min(rtts),
            max_rtt=max(rtts),
            avg_rtt=timedelta(seconds=statistics.fmean(seconds)),
            stddev_rtt=timedelta(seconds=statistics.pstdev(seconds)),
            resolved_address=resolved_address,
            display_address=display_address,
        )


@dataclass(frozen=True)
class ProbeResult:
    """Output of probing one target once."""

    packets: tuple[Packet, ...]
    stats: Statistics
    stats_timestamp: datetime


@dataclass(frozen=True)
class MetricPoint:
    """A single timestamped, attributed data point."""

    value: float
    timestamp: datetime
    attributes: Mapping[str, str]


@dataclass
class MetricSeries:
    """A named numeric series holding zero or more points."""

    name: str
    unit: str
    points: list[MetricPoint] = field(default_factory=list)

    def append(self, value: float, timestamp: datetime, attributes: Mapping[str, str]) -> None:
        """Add one point, keeping a private copy of its attributes."""
        self.points.append(MetricPoint(value, timestamp, dict(attributes)))

    def __len__(self) -> int:
        return len(self.points)


class MetricBatch:
    """The metric output of one sweep: six independent series.

    Built fresh every sweep and handed off to the consumer as a whole.
    """

    def __init__(self, series: Sequence[MetricSeries]):
        self._series = {s.name: s for s in series}

    @classmethod
    def empty(cls) -> "MetricBatch":
        """Create a batch holding all six series with no points."""
        return cls([MetricSeries(name, unit) for name, unit in METRIC_SERIES])

    def __getitem__(self, name: str) -> MetricSeries:
        return self._series[name]

    def __iter__(self) -> Iterator[MetricSeries]:
        return iter(self._series.values())

    def __len__(self) -> int:
        return len(self._series)

    def __repr__(self) -> str:
        counts = ", ".join(f"{s.name}={len(s)}" for s in self)
        return f"MetricBatch({counts})"

    @property
    def point_count(self) -> int:
        """Total number of points across all series."""
        return sum(len(s) for s in self)

    def points_for(self, peer_name: str) -> list[tuple[str, MetricPoint]]:
        """All (series name, point) pairs attributed to one configured target."""
        return [
            (s.name, p)
            for s in self
            for p in s.points
            if p.attributes.get(ATTR_PEER_NAME) == peer_name
        ]
