"""One sweep: probe every configured target and aggregate the results."""

import logging
from typing import Iterable

from icmpcheck.aggregator import SweepAggregator
from icmpcheck.config import Target
from icmpcheck.errors import ProbeExecutionError, ResolutionError
from icmpcheck.models import MetricBatch
from icmpcheck.prober import Prober

logger = logging.getLogger(__name__)


def run_sweep(targets: Iterable[Target], prober: Prober) -> MetricBatch:
    """Probe targets sequentially, in order, and build the sweep's batch.

    A failing target is logged and skipped; it never aborts the sweep and
    contributes no points. The batch is built only after every target has
    been attempted.

    Args:
        targets: Targets in configured order
        prober: Probe backend

    Returns:
        The fully populated MetricBatch for this sweep
    """
    aggregator = SweepAggregator()
    attempted = 0
    failed = 0

    for target in targets:
        attempted += 1
        try:
            result = prober.probe(target)
        except ResolutionError as e:
            failed += 1
            logger.warning(
                "Skipping target: target=%s, reason=resolution failed, error=%s",
                target.address,
                e,
            )
            continue
        except ProbeExecutionError as e:
            failed += 1
            logger.error(
                "Failed to execute probe: target=%s, error=%s", target.address, e
            )
            continue
        except Exception:
            failed += 1
            logger.exception("Unexpected probe failure: target=%s", target.address)
            continue

        aggregator.add_result(result)

    batch = aggregator.build()
    logger.debug(
        "Sweep finished: targets=%d, failed=%d, points=%d",
        attempted,
        failed,
        batch.point_count,
    )
    return batch
