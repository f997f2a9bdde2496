"""Retry scheduler worker.

Runs on an EventBridge schedule. Finds executions parked in
failed_pending_retry whose next_retry_at has passed and runs each one.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Any

import structlog

from commerceflow.execution.runner import (
    ExecutionRunner,
    RunStatus,
    create_execution_runner,
    stop_before_timeout,
)

logger = structlog.get_logger()

_runner: ExecutionRunner | None = None


def get_runner() -> ExecutionRunner:
    """Get the execution runner, reused across warm invocations."""
    global _runner
    if _runner is None:
        _runner = create_execution_runner()
    return _runner


@dataclass
class SweepMetrics:
    """Counts for one sweep."""

    due: int = 0
    failed: int = 0
    by_status: dict[str, int] = field(default_factory=dict)

    def record(self, status: RunStatus) -> None:
        self.by_status[status.value] = self.by_status.get(status.value, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {"due": self.due, "failed": self.failed, **self.by_status}


def handler(event: dict[str, Any], context: Any) -> dict:
    """Sweep and run due retries.

    Args:
        event: EventBridge scheduled event. Optional ``limit`` override.
        context: Lambda context.

    Returns:
        Sweep counts.
    """
    limit = int(event.get("limit") or os.environ.get("RETRY_SWEEP_LIMIT", "25"))

    runner = get_runner()
    due = runner.execution_repo.list_due_retries(now=runner.clock(), limit=limit)
    metrics = SweepMetrics(due=len(due))

    logger.info("Retry sweep started", due=len(due), limit=limit)

    should_stop = stop_before_timeout(context)

    loop = asyncio.new_event_loop()
    try:
        for index, execution in enumerate(due):
            if should_stop is not None and should_stop():
                logger.warning("Retry sweep stopped early", remaining=len(due) - index)
                break
            try:
                outcome = loop.run_until_complete(runner.run(execution.id, should_stop=should_stop))
                metrics.record(outcome.status)
            except Exception as e:
                logger.exception("Retry failed", execution_id=execution.id, error=str(e))
                metrics.failed += 1
    finally:
        loop.close()

    logger.info("Retry sweep complete", **metrics.to_dict())
    return metrics.to_dict()
