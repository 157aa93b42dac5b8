"""ICMP echo prober for icmpcheck built on icmplib sockets."""

import logging
import os
import threading
import time
from datetime import datetime, timedelta, timezone

from icmplib import (
    ICMPError,
    ICMPLibError,
    ICMPRequest,
    ICMPv4Socket,
    ICMPv6Socket,
    NameLookupError,
    TimeoutExceeded,
    is_ipv6_address,
    resolve,
)

from icmpcheck.config import Target
from icmpcheck.errors import ProbeExecutionError, ResolutionError
from icmpcheck.models import Packet, ProbeResult, Statistics

logger = logging.getLogger(__name__)

ICMP_V4_ECHO_REPLY = 0
ICMP_V6_ECHO_REPLY = 129


class IcmpProber:
    """Prober that runs a bounded echo session over an ICMP socket.

    Requests are sent target.count times, packet_interval seconds apart, and
    the whole session shares a single deadline of target.timeout. Replies
    that arrive before the deadline are recorded; unanswered requests count
    as loss. Only resolution and socket failures are raised.

    **Privileges:**
    With privileged=False, icmplib opens a datagram ICMP socket, which on
    Linux requires the process group to be within net.ipv4.ping_group_range.
    privileged=True opens a raw socket and requires root or CAP_NET_RAW.
    Missing permissions surface as ProbeExecutionError on every probe.
    """

    def __init__(
        self,
        privileged: bool = False,
        packet_interval: float = 1.0,
        payload_size: int = 56,
    ):
        """Initialize ICMP prober.

        Args:
            privileged: Use raw sockets instead of datagram ICMP sockets
            packet_interval: Seconds between consecutive echo requests
            payload_size: Echo payload size in bytes
        """
        if packet_interval <= 0:
            raise ValueError("packet_interval must be positive")
        if payload_size < 0:
            raise ValueError("payload_size must not be negative")

        self.privileged = privileged
        self.packet_interval = packet_interval
        self.payload_size = payload_size

        logger.debug(
            "IcmpProber initialized: privileged=%s, packet_interval=%.3fs, payload_size=%d",
            privileged,
            packet_interval,
            payload_size,
        )

    def probe(self, target: Target) -> ProbeResult:
        """Probe one target once.

        Raises:
            ResolutionError: If target.address does not resolve
            ProbeExecutionError: If the ICMP session cannot run
        """
        address = self._resolve(target.address)

        logger.debug(
            "Probing: target=%s, address=%s, count=%d, timeout=%s",
            target.address,
            address,
            target.count,
            target.timeout,
        )

        try:
            packets, sent = self._run_session(target, address)
        except ICMPLibError as e:
            raise ProbeExecutionError(target.address, str(e) or type(e).__name__) from e
        except OSError as e:
            raise ProbeExecutionError(target.address, str(e)) from e

        stats = Statistics.from_rtts(
            [p.rtt for p in packets],
            packets_sent=sent,
            resolved_address=address,
            display_address=target.address,
        )
        stats_timestamp = datetime.now(timezone.utc)

        logger.debug(
            "Probe finished: target=%s, sent=%d, received=%d",
            target.address,
            sent,
            len(packets),
        )
        return ProbeResult(packets=tuple(packets), stats=stats, stats_timestamp=stats_timestamp)

    def _resolve(self, address: str) -> str:
        try:
            addresses = resolve(address)
        except NameLookupError as e:
            raise ResolutionError(address, str(e) or "name lookup failed") from e

        if not addresses:
            raise ResolutionError(address, "name lookup returned no addresses")
        return addresses[0]

    def _identifier(self) -> int:
        return (os.getpid() ^ threading.get_ident()) & 0xFFFF

    def _run_session(self, target: Target, address: str) -> tuple[list[Packet], int]:
        """Send up to target.count requests within the session deadline.

        Returns:
            Tuple of (received packets in arrival order, requests sent)
        """
        ipv6 = is_ipv6_address(address)
        socket_class = ICMPv6Socket if ipv6 else ICMPv4Socket
        echo_reply_type = ICMP_V6_ECHO_REPLY if ipv6 else ICMP_V4_ECHO_REPLY

        identifier = self._identifier()
        deadline = time.monotonic() + target.timeout.total_seconds()
        outstanding: dict[int, ICMPRequest] = {}
        packets: list[Packet] = []
        sent = 0

        with socket_class(privileged=self.privileged) as sock:
            for sequence in range(target.count):
                sent_at = time.monotonic()
                if sent_at >= deadline:
                    break

                request = ICMPRequest(
                    destination=address,
                    id=identifier,
                    sequence=sequence,
                    payload_size=self.payload_size,
                )
                sock.send(request)
                outstanding[sequence] = request
                sent += 1

                if sequence < target.count - 1:
                    next_send = min(deadline, sent_at + self.packet_interval)
                    packets.extend(
                        self._receive_until(
                            sock, outstanding, identifier, echo_reply_type, next_send, False
                        )
                    )

            packets.extend(
                self._receive_until(
                    sock, outstanding, identifier, echo_reply_type, deadline, True
                )
            )

        return packets, sent

    def _receive_until(
        self,
        sock,
        outstanding: dict[int, ICMPRequest],
        identifier: int,
        echo_reply_type: int,
        until: float,
        stop_when_answered: bool,
    ) -> list[Packet]:
        """Collect replies to outstanding requests until a monotonic instant.

        When every outstanding request is answered, returns at once if
        stop_when_answered is set, otherwise sleeps out the remaining time
        to keep request pacing.
        """
        packets = []

        while True:
            remaining = until - time.monotonic()
            if remaining <= 0:
                break

            if not outstanding:
                if not stop_when_answered:
                    time.sleep(remaining)
                break

            try:
                reply = sock.receive(None, remaining)
            except TimeoutExceeded:
                break

            request = outstanding.get(reply.sequence)
            if request is None:
                continue
            # Datagram sockets rewrite the identifier, the kernel filters for us
            if self.privileged and reply.id != identifier:
                continue

            received_at = datetime.now(timezone.utc)

            try:
                reply.raise_for_status()
            except ICMPError as e:
                del outstanding[reply.sequence]
                logger.debug(
                    "Error reply: address=%s, sequence=%d, error=%s",
                    request.destination,
                    reply.sequence,
                    e,
                )
                continue

            if reply.type != echo_reply_type:
                continue

            del outstanding[reply.sequence]
            rtt = timedelta(seconds=max(0.0, reply.time - request.time))
            packets.append(
                Packet(
                    timestamp=received_at,
                    rtt=rtt,
                    source_address=reply.source,
                    sequence=reply.sequence,
                )
            )
            logger.debug(
                "Reply received: address=%s, sequence=%d, rtt=%.3fms",
                reply.source,
                reply.sequence,
                rtt / timedelta(milliseconds=1),
            )

        return packets
