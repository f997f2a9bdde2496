"""Workflow definition and execution repositories."""

from datetime import datetime

from commerceflow.models.base import utc_now
from commerceflow.models.execution import Execution, ExecutionStatus
from commerceflow.models.workflow import WorkflowDefinition
from commerceflow.repositories.base import BaseRepository


class WorkflowDefinitionRepository(BaseRepository[WorkflowDefinition]):
    """Repository for WorkflowDefinition entities."""

    def __init__(self, table_name: str | None = None):
        """Initialize workflow definition repository."""
        super().__init__(WorkflowDefinition, table_name)

    def get_by_id(self, tenant_id: str, workflow_id: str) -> WorkflowDefinition | None:
        """Get a workflow definition within a tenant.

        Args:
            tenant_id: The tenant ID.
            workflow_id: The workflow ID.

        Returns:
            WorkflowDefinition or None if not found.
        """
        return self.get(pk=f"TENANT#{tenant_id}", sk=f"WFDEF#{workflow_id}")

    def list_by_tenant(
        self,
        tenant_id: str,
        limit: int = 50,
        last_key: dict | None = None,
    ) -> tuple[list[WorkflowDefinition], dict | None]:
        """List workflow definitions for a tenant.

        Args:
            tenant_id: The tenant ID.
            limit: Maximum definitions to return.
            last_key: Pagination cursor.

        Returns:
            Tuple of (definitions, next_page_key).
        """
        return self.query(
            pk=f"TENANT#{tenant_id}",
            sk_begins_with="WFDEF#",
            limit=limit,
            last_key=last_key,
        )

    def create_definition(self, workflow: WorkflowDefinition) -> WorkflowDefinition:
        """Create a new workflow definition.

        Args:
            workflow: The definition to create.

        Returns:
            The created definition.
        """
        return self.create(workflow, gsi_keys=workflow.get_gsi1_keys())


class ExecutionRepository(BaseRepository[Execution]):
    """Repository for Execution entities.

    Every write goes through the optimistic version check, so two workers
    racing on the same execution cannot both persist a transition.
    """

    def __init__(self, table_name: str | None = None):
        """Initialize execution repository."""
        super().__init__(Execution, table_name)

    def get_by_id(self, execution_id: str) -> Execution | None:
        """Get an execution by ID.

        Args:
            execution_id: The execution ID.

        Returns:
            Execution or None if not found.
        """
        return self.get(pk=f"EXEC#{execution_id}", sk="EXEC")

    def create_execution(self, execution: Execution) -> Execution:
        """Create a new execution.

        Args:
            execution: The execution to create.

        Returns:
            The created execution.
        """
        return self.create(execution, gsi_keys=execution.get_gsi1_keys())

    def save(self, execution: Execution) -> Execution:
        """Persist a state transition (version checked).

        Args:
            execution: The execution to save.

        Returns:
            The saved execution.

        Raises:
            ConflictError: If another process modified the execution.
        """
        return self.update(execution, gsi_keys=execution.get_gsi1_keys())

    def list_by_status(
        self,
        status: ExecutionStatus,
        limit: int = 50,
    ) -> list[Execution]:
        """List executions in a status using GSI1.

        Args:
            status: Status to list.
            limit: Maximum executions to return.

        Returns:
            List of executions ordered by GSI1 sort key.
        """
        items, _ = self.query(
            pk=f"EXEC_STATUS#{status.value}",
            index_name="GSI1",
            limit=limit,
        )
        return items

    def list_due_retries(
        self,
        now: datetime | None = None,
        limit: int = 25,
    ) -> list[Execution]:
        """List executions whose scheduled retry has elapsed.

        Args:
            now: Reference time. Defaults to the current UTC time.
            limit: Maximum executions to return.

        Returns:
            Executions in failed_pending_retry with next_retry_at <= now,
            oldest first.
        """
        now = now or utc_now()
        items, _ = self.query(
            pk=f"EXEC_STATUS#{ExecutionStatus.FAILED_PENDING_RETRY.value}",
            sk_lte=now.isoformat(),
            index_name="GSI1",
            limit=limit,
        )
        return items
