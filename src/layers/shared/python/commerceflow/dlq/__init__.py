"""Dead-letter handling for permanently failed executions."""

from commerceflow.dlq.dead_letter import DeadLetterService, DeadLetterSink

__all__ = ["DeadLetterService", "DeadLetterSink"]
