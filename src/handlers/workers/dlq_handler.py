"""Dead-letter handler.

Two entry shapes:

1. SQS events from the dead-letter alert queue. Each message describes a
   dead-lettered execution; the handler logs an operator alert and checks
   the matching entry is still open.
2. Operator actions invoked directly:
   - ``{"action": "list", "tenant_id": ...}``
   - ``{"action": "retry", "tenant_id": ..., "entry_id": ...}``
   - ``{"action": "resolve", "tenant_id": ..., "entry_id": ..., "note": ...}``

A retry creates a new pending execution and runs its first attempt
immediately.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import structlog

from commerceflow.dlq.dead_letter import DeadLetterService
from commerceflow.execution.runner import (
    ExecutionRunner,
    create_execution_runner,
    stop_before_timeout,
)
from commerceflow.models.dead_letter import DeadLetterStatus
from commerceflow.utils.exceptions import CommerceFlowError

logger = structlog.get_logger()

_service: DeadLetterService | None = None
_runner: ExecutionRunner | None = None


def get_service() -> DeadLetterService:
    """Get the dead-letter service, reused across warm invocations."""
    global _service
    if _service is None:
        _service = DeadLetterService()
    return _service


def get_runner() -> ExecutionRunner:
    """Get the execution runner, reused across warm invocations."""
    global _runner
    if _runner is None:
        _runner = create_execution_runner()
    return _runner


@dataclass
class DLQMetrics:
    """Metrics for one batch of alert messages."""

    total_messages: int = 0
    alerted_messages: int = 0
    already_closed: int = 0
    discarded_messages: int = 0


def handler(event: dict[str, Any], context: Any) -> dict:
    """Process dead-letter alerts or an operator action.

    Args:
        event: SQS event, or an operator action payload.
        context: Lambda context.

    Returns:
        Batch item failures for SQS events, otherwise the action result.
    """
    if "Records" in event:
        return process_alerts(event["Records"])

    action = event.get("action", "list")
    tenant_id = event.get("tenant_id")

    logger.info("Dead letter action invoked", action=action, tenant_id=tenant_id)

    if not tenant_id:
        return {"status": "error", "error": "tenant_id is required"}

    try:
        if action == "list":
            return list_entries(tenant_id)
        elif action == "retry":
            return retry_entry(tenant_id, event.get("entry_id"), context)
        elif action == "resolve":
            return resolve_entry(tenant_id, event.get("entry_id"), event.get("note"))
        else:
            return {"status": "error", "error": f"Unknown action: {action}"}

    except CommerceFlowError as e:
        logger.warning("Dead letter action rejected", action=action, error=e.message)
        return {"status": "error", **e.to_dict()}


def list_entries(tenant_id: str) -> dict:
    """List a tenant's open entries."""
    entries = get_service().list_open(tenant_id)
    return {
        "status": "ok",
        "entries": [entry.model_dump(mode="json") for entry in entries],
    }


def retry_entry(tenant_id: str, entry_id: str | None, context: Any) -> dict:
    """Re-queue an entry and run the new execution's first attempt."""
    if not entry_id:
        return {"status": "error", "error": "entry_id is required"}

    execution = get_service().retry(tenant_id, entry_id)

    loop = asyncio.new_event_loop()
    try:
        outcome = loop.run_until_complete(
            get_runner().run(execution.id, should_stop=stop_before_timeout(context))
        )
    finally:
        loop.close()

    return {"status": "ok", "entry_id": entry_id, "execution": outcome.to_dict()}


def resolve_entry(tenant_id: str, entry_id: str | None, note: str | None) -> dict:
    """Close an entry without retrying."""
    if not entry_id:
        return {"status": "error", "error": "entry_id is required"}

    entry = get_service().resolve(tenant_id, entry_id, note)
    return {"status": "ok", "entry": entry.model_dump(mode="json")}


def process_alerts(records: list[dict]) -> dict:
    """Log an operator alert for each dead-lettered execution.

    Args:
        records: SQS records published by the dead-letter sink.

    Returns:
        Batch item failures for partial retry.
    """
    metrics = DLQMetrics()
    batch_item_failures = []
    repository = get_service().repository

    for record in records:
        metrics.total_messages += 1
        message_id = record.get("messageId")

        try:
            message = json.loads(record.get("body") or "{}")
        except json.JSONDecodeError:
            logger.error("Invalid JSON in dead letter message", message_id=message_id)
            metrics.discarded_messages += 1
            continue

        try:
            entry = repository.get_by_id(message.get("tenant_id", ""), message.get("entry_id", ""))
        except Exception as e:
            logger.exception("Failed to load dead letter entry", message_id=message_id, error=str(e))
            batch_item_failures.append({"itemIdentifier": message_id})
            continue

        if entry is not None and DeadLetterStatus(entry.status) != DeadLetterStatus.OPEN:
            metrics.already_closed += 1
            continue

        logger.error(
            "Workflow execution dead-lettered",
            entry_id=message.get("entry_id"),
            execution_id=message.get("execution_id"),
            workflow_id=message.get("workflow_id"),
            tenant_id=message.get("tenant_id"),
            error_type=message.get("error_type"),
            error_message=message.get("error_message"),
            retry_count=message.get("retry_count"),
        )
        metrics.alerted_messages += 1

    logger.info(
        "Dead letter alerts processed",
        total=metrics.total_messages,
        alerted=metrics.alerted_messages,
        already_closed=metrics.already_closed,
        discarded=metrics.discarded_messages,
    )

    return {"batchItemFailures": batch_item_failures}
