"""DynamoDB repositories for CommerceFlow entities."""

from commerceflow.repositories.base import BaseRepository
from commerceflow.repositories.commerce import (
    InventoryRepository,
    OrderRepository,
    TenantRecordRepository,
)
from commerceflow.repositories.dead_letter import DeadLetterRepository
from commerceflow.repositories.workflow import ExecutionRepository, WorkflowDefinitionRepository

__all__ = [
    "BaseRepository",
    "DeadLetterRepository",
    "ExecutionRepository",
    "InventoryRepository",
    "OrderRepository",
    "TenantRecordRepository",
    "WorkflowDefinitionRepository",
]
