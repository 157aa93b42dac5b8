"""Entry point for running icmpcheck as a standalone receiver."""

import argparse
import logging
import os
import signal
import sys
import threading
from functools import partial

from PySide6.QtCore import QCoreApplication, QTimer

from icmpcheck.config import load_config_file
from icmpcheck.consumer import JsonLinesConsumer
from icmpcheck.errors import ConfigurationError
from icmpcheck.logging_config import configure_logging
from icmpcheck.prober import FakeProber
from icmpcheck.prober_icmp import IcmpProber
from icmpcheck.scheduler import ProbeScheduler

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Periodic ICMP reachability and latency probing")

    parser.add_argument(
        "--config",
        type=str,
        default=os.getenv("ICMPCHECK_CONFIG"),
        help="Path to JSON configuration file (default: env ICMPCHECK_CONFIG)",
    )
    parser.add_argument(
        "--privileged",
        action="store_true",
        default=_env_flag("ICMPCHECK_PRIVILEGED"),
        help="Use raw ICMP sockets (needs root or CAP_NET_RAW; default: env ICMPCHECK_PRIVILEGED)",
    )
    parser.add_argument(
        "--packet-interval",
        type=float,
        default=os.getenv("ICMPCHECK_PACKET_INTERVAL", "1.0"),
        help="Seconds between echo requests of one session (default: 1.0 or env ICMPCHECK_PACKET_INTERVAL)",
    )
    parser.add_argument(
        "--fake",
        action="store_true",
        default=os.getenv("ICMPCHECK_PROBER", "").lower() == "fake",
        help="Use simulated probes instead of ICMP (default: env ICMPCHECK_PROBER=fake)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: env ICMPCHECK_LOG_LEVEL or INFO)",
    )

    return parser.parse_args(argv)


def _terminate(signum, frame, scheduler: ProbeScheduler, cancel_event: threading.Event, app):
    logger.info("Signal received, shutting down: signal=%s", signum)
    cancel_event.set()
    scheduler.shutdown()
    app.quit()


def main(argv=None) -> int:
    """Run the receiver until SIGINT or SIGTERM."""
    args = _parse_args(argv)
    configure_logging(args.log_level)

    if not args.config:
        logger.error("No configuration file given (use --config or ICMPCHECK_CONFIG)")
        return EXIT_CONFIG_ERROR

    try:
        config = load_config_file(args.config)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_CONFIG_ERROR

    if not config.targets:
        logger.warning("No targets configured, sweeps will emit empty batches")

    if args.fake:
        prober = FakeProber()
        logger.info("Using FakeProber")
    else:
        try:
            prober = IcmpProber(privileged=args.privileged, packet_interval=args.packet_interval)
        except ValueError as e:
            logger.error("Invalid prober setting: %s", e)
            return EXIT_CONFIG_ERROR

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    scheduler = ProbeScheduler(config, prober, JsonLinesConsumer(sys.stdout))
    cancel_event = threading.Event()

    handler = partial(_terminate, scheduler=scheduler, cancel_event=cancel_event, app=app)
    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)

    # Python signal handlers only run when the interpreter gets control
    keepalive = QTimer()
    keepalive.timeout.connect(lambda: None)
    keepalive.start(200)

    try:
        scheduler.start(cancel_event)
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_CONFIG_ERROR

    status = app.exec()
    keepalive.stop()
    logger.info("Receiver exited: %s", scheduler.get_stats())
    return status


if __name__ == "__main__":
    sys.exit(main())
