"""Periodic sweep scheduler with a single background sweep thread."""

import enum
import logging
import threading

from PySide6.QtCore import QCoreApplication, QObject, QThreadPool, QTimer, Signal

from icmpcheck.config import Config
from icmpcheck.consumer import MetricsConsumer
from icmpcheck.prober import Prober
from icmpcheck.workers import SweepWorker

logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class ProbeScheduler(QObject):
    """Runs one sweep over all configured targets on every timer tick.

    Key features:
    - One sweep at a time on a dedicated single-thread pool
    - Ticks that fire while a sweep is in flight are coalesced into one
      pending sweep that starts as soon as the current one finishes
    - Cooperative cancellation, checked at tick boundaries only; an
      in-flight sweep always runs to completion
    - Each finished sweep is handed to the consumer exactly once

    Lifecycle: IDLE -> RUNNING -> STOPPED. A stopped scheduler cannot be
    restarted.

    Thread-safe: All state access on the owning thread via signals/slots.
    The owning thread must run a Qt event loop.
    """

    # Signals
    batch_ready = Signal(object, int)  # (MetricBatch, sweep_id)
    error = Signal(int, str)  # (sweep_id, error_msg)

    def __init__(
        self,
        config: Config,
        prober: Prober,
        consumer: MetricsConsumer,
        parent=None,
    ):
        """Initialize scheduler.

        Args:
            config: Validated receiver configuration
            prober: Probe backend used for every target
            consumer: Receives one MetricBatch per completed sweep
            parent: Qt parent object
        """
        super().__init__(parent)

        self.config = config
        self.prober = prober
        self.consumer = consumer

        self._state = SchedulerState.IDLE
        self._cancel_event = threading.Event()
        self._parent_cancel: threading.Event | None = None

        # Sweep tracking
        self._sweep_in_flight = False
        self._tick_pending = False
        self._worker: SweepWorker | None = None
        self._sweeps_started = 0
        self._sweeps_completed = 0

        # Dedicated pool: exactly one background sweep thread
        self.thread_pool = QThreadPool(self)
        self.thread_pool.setMaxThreadCount(1)

        # Timer for periodic sweeps
        self.timer = QTimer(self)
        self.timer.timeout.connect(self._on_tick)

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    def start(self, cancel_event: threading.Event | None = None):
        """Start periodic sweeps. Returns immediately.

        Args:
            cancel_event: Optional parent cancellation signal. Once set, the
                scheduler stops at the next tick boundary.

        Raises:
            ConfigurationError: If the configuration is invalid
            RuntimeError: If the scheduler was already started
        """
        if self._state is SchedulerState.RUNNING:
            raise RuntimeError("scheduler already running")
        if self._state is SchedulerState.STOPPED:
            raise RuntimeError("scheduler cannot be restarted")

        # Refuse to start the loop on a malformed config
        self.config.validate()

        self._parent_cancel = cancel_event
        self.timer.start(self.config.interval_ms)
        self._state = SchedulerState.RUNNING
        logger.info(
            "Scheduler started: %d targets, interval=%dms",
            len(self.config.targets),
            self.config.interval_ms,
        )

    def shutdown(self, drain_timeout_ms: int | None = None) -> bool:
        """Stop scheduling sweeps.

        Does not interrupt an in-flight sweep; its batch is still handed off.
        Idempotent, and a no-op when the scheduler was never started.

        Args:
            drain_timeout_ms: If given, wait up to this long for the in-flight
                sweep to finish

        Returns:
            False if the drain timeout expired with a sweep still running
        """
        if self._state is SchedulerState.RUNNING:
            self._state = SchedulerState.STOPPED
            self._cancel_event.set()
            self._tick_pending = False
            self.timer.stop()
            logger.info(
                "Scheduler stopped: sweeps_started=%d, in_flight=%s",
                self._sweeps_started,
                self._sweep_in_flight,
            )
        else:
            logger.debug("Shutdown ignored: state=%s", self._state.value)

        if drain_timeout_ms is None or not self._sweep_in_flight:
            return True

        drained = self.thread_pool.waitForDone(drain_timeout_ms)
        if not drained:
            logger.warning("Sweep still running after drain timeout: %dms", drain_timeout_ms)
            return False

        # The worker's signals are queued to this thread; deliver them now so
        # the batch is handed off even if the event loop quits next
        QCoreApplication.sendPostedEvents()
        return True

    def _is_cancelled(self) -> bool:
        if self._cancel_event.is_set():
            return True
        return self._parent_cancel is not None and self._parent_cancel.is_set()

    def _on_tick(self):
        """Handle timer tick - start a sweep or coalesce into a pending one."""
        if self._is_cancelled():
            logger.debug("Tick after cancellation, shutting down")
            self.shutdown()
            return

        if self._sweep_in_flight:
            if not self._tick_pending:
                logger.debug("Tick coalesced: sweep_id=%d still running", self._sweeps_started)
            self._tick_pending = True
            return

        self._start_sweep()

    def _start_sweep(self):
        self._sweeps_started += 1
        sweep_id = self._sweeps_started
        self._sweep_in_flight = True

        worker = SweepWorker(self.prober, self.config.targets, sweep_id)
        worker.signals.batch_ready.connect(self._on_batch_ready)
        worker.signals.error.connect(self._on_sweep_error)
        worker.signals.finished.connect(self._on_sweep_finished)
        self._worker = worker

        self.thread_pool.start(worker)

    def _on_batch_ready(self, batch, sweep_id: int):
        """Hand a completed sweep to the consumer.

        Args:
            batch: MetricBatch of the sweep
            sweep_id: Sequence number of the sweep
        """
        try:
            self.consumer.consume(batch)
        except Exception:
            # No retry: the batch is dropped
            logger.exception("Consumer failed: sweep_id=%d", sweep_id)
        self.batch_ready.emit(batch, sweep_id)

    def _on_sweep_error(self, sweep_id: int, error_msg: str):
        logger.error("Sweep failed: sweep_id=%d, error=%s", sweep_id, error_msg)
        self.error.emit(sweep_id, error_msg)

    def _on_sweep_finished(self, sweep_id: int):
        """Handle worker completion - clear in-flight flag, run a pending tick.

        Args:
            sweep_id: Sweep that finished
        """
        self._sweep_in_flight = False
        self._sweeps_completed += 1
        self._worker = None

        logger.debug("Sweep finished: sweep_id=%d, pending=%s", sweep_id, self._tick_pending)

        if self._tick_pending:
            self._tick_pending = False
            if self._is_cancelled():
                self.shutdown()
            else:
                self._start_sweep()

    def get_stats(self):
        """Get scheduler statistics.

        Returns:
            Dict with scheduler state info
        """
        return {
            "state": self._state.value,
            "targets": len(self.config.targets),
            "interval_ms": self.config.interval_ms,
            "sweeps_started": self._sweeps_started,
            "sweeps_completed": self._sweeps_completed,
            "in_flight": self._sweep_in_flight,
            "tick_pending": self._tick_pending,
        }
