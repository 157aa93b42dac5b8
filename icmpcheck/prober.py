"""Prober abstraction and simulated prober for icmpcheck."""

import random
from datetime import datetime, timedelta, timezone
from typing import Iterable, Protocol

from icmpcheck.config import Target
from icmpcheck.errors import ProbeExecutionError, ResolutionError
from icmpcheck.models import Packet, ProbeResult, Statistics


class Prober(Protocol):
    """Protocol defining the interface for probe backends."""

    def probe(self, target: Target) -> ProbeResult:
        """Run one bounded probe session against the target.

        Raises:
            ResolutionError: If the target address cannot be resolved
            ProbeExecutionError: If the session cannot run at all
        """
        ...


class FakeProber:
    """Generates simulated probe sessions for testing and dry runs."""

    def __init__(
        self,
        seed: int | None = None,
        loss_probability: float = 0.02,
        unresolvable: Iterable[str] = (),
        failing: Iterable[str] = (),
    ):
        """Initialize with optional random seed for deterministic behavior.

        Args:
            seed: Random seed
            loss_probability: Chance that any single request goes unanswered
            unresolvable: Addresses that fail with ResolutionError
            failing: Addresses that fail with ProbeExecutionError
        """
        # Isolated random instance, probes run on a worker thread
        self._random = random.Random(seed)

        self.base_latency_ms = 25.0
        self.latency_variance_ms = 5.0
        self.loss_probability = loss_probability
        self.unresolvable = set(unresolvable)
        self.failing = set(failing)
        self.calls: list[str] = []

    def probe(self, target: Target) -> ProbeResult:
        """Simulate a probe session of target.count requests."""
        self.calls.append(target.address)

        if target.address in self.unresolvable:
            raise ResolutionError(target.address, "no such host")
        if target.address in self.failing:
            raise ProbeExecutionError(target.address, "simulated socket failure")

        resolved = self._resolve(target.address)
        packets = []
        for sequence in range(target.count):
            if self._random.random() < self.loss_probability:
                continue
            latency_ms = max(
                0.1, self.base_latency_ms + self._random.gauss(0, self.latency_variance_ms)
            )
            packets.append(
                Packet(
                    timestamp=datetime.now(timezone.utc),
                    rtt=timedelta(milliseconds=round(latency_ms, 3)),
                    source_address=resolved,
                    sequence=sequence,
                )
            )

        stats = Statistics.from_rtts(
            [p.rtt for p in packets],
            packets_sent=target.count,
            resolved_address=resolved,
            display_address=target.address,
        )
        return ProbeResult(
            packets=tuple(packets),
            stats=stats,
            stats_timestamp=datetime.now(timezone.utc),
        )

    def _resolve(self, address: str) -> str:
        """Map an address to a stable documentation-range IPv4 address."""
        if all(part.isdigit() for part in address.split(".")) and address.count(".") == 3:
            return address
        return f"192.0.2.{sum(address.encode()) % 254 + 1}"
