"""Worker classes for background sweep tasks."""

import logging
from typing import Sequence

from PySide6.QtCore import QObject, QRunnable, Signal

from icmpcheck.config import Target
from icmpcheck.prober import Prober
from icmpcheck.sweep import run_sweep

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """Signals for communicating between the sweep thread and the owner thread."""

    batch_ready = Signal(object, int)  # Emits (MetricBatch, sweep_id)
    error = Signal(int, str)  # Emits (sweep_id, error message)
    finished = Signal(int)  # Emits sweep_id when the worker completes


class SweepWorker(QRunnable):
    """Worker that executes one full sweep in a background thread."""

    def __init__(self, prober: Prober, targets: Sequence[Target], sweep_id: int):
        super().__init__()
        self.prober = prober
        self.targets = tuple(targets)
        self.sweep_id = sweep_id
        self.signals = WorkerSignals()
        # The scheduler keeps its own reference until finished is handled
        self.setAutoDelete(False)

    def run(self):
        """Execute the sweep in a background thread."""
        try:
            logger.debug(
                "Sweep starting: sweep_id=%d, targets=%d", self.sweep_id, len(self.targets)
            )

            # Probing is slow: up to the sum of per-target session timeouts
            batch = run_sweep(self.targets, self.prober)

            # Single handoff of the complete batch
            self.signals.batch_ready.emit(batch, self.sweep_id)

            logger.debug(
                "Sweep completed: sweep_id=%d, points=%d", self.sweep_id, batch.point_count
            )

        except Exception as e:
            logger.exception("Sweep exception: sweep_id=%d, error=%s", self.sweep_id, str(e))
            self.signals.error.emit(self.sweep_id, str(e))

        finally:
            # Always signal completion
            self.signals.finished.emit(self.sweep_id)
