"""Workflow executor worker.

Runs one attempt of a workflow execution. Invoked directly with
``{"execution_id": ...}`` (manual test runs, operator retries) or from the
execution SQS queue with the same payload in each record body.
"""

import asyncio
import json
from typing import Any

import structlog

from commerceflow.execution.runner import (
    ExecutionRunner,
    create_execution_runner,
    stop_before_timeout,
)
from commerceflow.utils.exceptions import NotFoundError

logger = structlog.get_logger()

_runner: ExecutionRunner | None = None


def get_runner() -> ExecutionRunner:
    """Get the execution runner, reused across warm invocations."""
    global _runner
    if _runner is None:
        _runner = create_execution_runner()
    return _runner


def handler(event: dict[str, Any], context: Any) -> dict:
    """Execute a workflow execution.

    Args:
        event: ``{"execution_id": ..., "force": bool}`` or an SQS event.
        context: Lambda context.

    Returns:
        RunOutcome dict, or batch item failures for SQS events.
    """
    if "Records" in event:
        return process_records(event["Records"], context)

    execution_id = event.get("execution_id")
    if not execution_id:
        logger.error("Workflow executor invoked without execution_id")
        return {"status": "error", "error": "execution_id is required"}

    loop = asyncio.new_event_loop()
    try:
        outcome = loop.run_until_complete(
            get_runner().run(
                execution_id,
                should_stop=stop_before_timeout(context),
                force=bool(event.get("force", False)),
            )
        )
        return outcome.to_dict()

    except NotFoundError as e:
        logger.warning("Execution not found", execution_id=execution_id)
        return {"status": "error", "execution_id": execution_id, **e.to_dict()}

    except Exception as e:
        logger.exception("Workflow executor error", execution_id=execution_id, error=str(e))
        return {"status": "error", "execution_id": execution_id, "error": str(e)}

    finally:
        loop.close()


def process_records(records: list[dict], context: Any) -> dict:
    """Run each queued execution, reporting failed records for redelivery.

    Args:
        records: SQS records whose bodies carry an execution_id.
        context: Lambda context.

    Returns:
        Batch item failures for partial retry.
    """
    batch_item_failures = []

    logger.info("Processing execution queue", record_count=len(records))

    loop = asyncio.new_event_loop()
    try:
        for record in records:
            message_id = record.get("messageId")
            try:
                body = json.loads(record.get("body") or "{}")
            except json.JSONDecodeError:
                logger.error("Invalid JSON in queue message", message_id=message_id)
                continue

            execution_id = body.get("execution_id")
            if not execution_id:
                logger.error("Queue message without execution_id", message_id=message_id)
                continue

            try:
                outcome = loop.run_until_complete(
                    get_runner().run(execution_id, should_stop=stop_before_timeout(context))
                )
                logger.info(
                    "Queued execution processed",
                    execution_id=execution_id,
                    status=outcome.status.value,
                )
            except NotFoundError:
                # Redelivery cannot make a missing execution appear
                logger.warning("Execution not found", execution_id=execution_id)
            except Exception as e:
                logger.exception(
                    "Failed to process queued execution",
                    message_id=message_id,
                    execution_id=execution_id,
                    error=str(e),
                )
                batch_item_failures.append({"itemIdentifier": message_id})
    finally:
        loop.close()

    return {"batchItemFailures": batch_item_failures}

