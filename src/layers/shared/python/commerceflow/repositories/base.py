"""Base repository class for DynamoDB operations."""

import os
from typing import Any, Generic, TypeVar

import boto3
import structlog
from botocore.exceptions import ClientError

from commerceflow.models.base import BaseModel
from commerceflow.utils.exceptions import ConflictError, NotFoundError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

# GSI key attribute names by index
_INDEX_KEYS = {
    "GSI1": ("GSI1PK", "GSI1SK"),
}


class BaseRepository(Generic[T]):
    """Base repository for DynamoDB single-table design.

    Provides common CRUD operations with optimistic locking support.
    """

    def __init__(
        self,
        model_class: type[T],
        table_name: str | None = None,
    ):
        """Initialize repository.

        Args:
            model_class: The Pydantic model class for this repository.
            table_name: DynamoDB table name. Defaults to TABLE_NAME env var.
        """
        self.model_class = model_class
        self.table_name = table_name or os.environ.get("TABLE_NAME", "commerceflow-dev")
        self._dynamodb = None
        self._table = None

    @property
    def dynamodb(self):
        """Get DynamoDB resource (lazy initialization)."""
        if self._dynamodb is None:
            self._dynamodb = boto3.resource("dynamodb")
        return self._dynamodb

    @property
    def table(self):
        """Get DynamoDB table (lazy initialization)."""
        if self._table is None:
            self._table = self.dynamodb.Table(self.table_name)
        return self._table

    def _build_key(self, pk: str, sk: str) -> dict[str, str]:
        """Build key dictionary for DynamoDB operations."""
        return {"PK": pk, "SK": sk}

    def _build_item(self, item: T, gsi_keys: dict[str, str] | None) -> dict[str, Any]:
        """Serialize a model with its table and index keys."""
        db_item = item.to_dynamodb()
        db_item.update(item.get_keys())
        if gsi_keys:
            db_item.update(gsi_keys)
        return db_item

    def get(self, pk: str, sk: str) -> T | None:
        """Get an item by its primary key.

        Args:
            pk: Partition key value.
            sk: Sort key value.

        Returns:
            Model instance or None if not found.
        """
        try:
            response = self.table.get_item(Key=self._build_key(pk, sk))
            item = response.get("Item")

            if not item:
                return None

            return self.model_class.from_dynamodb(item)

        except ClientError as e:
            logger.error("DynamoDB get_item failed", error=str(e), pk=pk, sk=sk)
            raise

    def get_or_raise(self, pk: str, sk: str, resource_type: str) -> T:
        """Get an item or raise NotFoundError.

        Args:
            pk: Partition key value.
            sk: Sort key value.
            resource_type: Resource type name for error message.

        Returns:
            Model instance.

        Raises:
            NotFoundError: If item not found.
        """
        item = self.get(pk, sk)
        if not item:
            # Extract ID from SK (assumes format PREFIX#id)
            resource_id = sk.split("#", 1)[-1] if "#" in sk else sk
            raise NotFoundError(resource_type, resource_id)
        return item

    def put(
        self,
        item: T,
        condition_expression: str | None = None,
        gsi_keys: dict[str, str] | None = None,
    ) -> T:
        """Put an item into DynamoDB.

        Args:
            item: Model instance to save.
            condition_expression: Optional condition expression.
            gsi_keys: Optional GSI key values to add.

        Returns:
            The saved model instance.
        """
        try:
            item.update_timestamp()
            db_item = self._build_item(item, gsi_keys)

            kwargs: dict[str, Any] = {"Item": db_item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            self.table.put_item(**kwargs)

            logger.debug(
                "Item saved",
                pk=db_item["PK"],
                sk=db_item["SK"],
                model=self.model_class.__name__,
            )

            return item

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ConflictError("Item already exists or version mismatch")
            logger.error("DynamoDB put_item failed", error=str(e))
            raise

    def create(self, item: T, gsi_keys: dict[str, str] | None = None) -> T:
        """Create a new item (fails if exists).

        Args:
            item: Model instance to create.
            gsi_keys: Optional GSI key values.

        Returns:
            The created model instance.

        Raises:
            ConflictError: If item already exists.
        """
        return self.put(
            item,
            condition_expression="attribute_not_exists(PK)",
            gsi_keys=gsi_keys,
        )

    def update(
        self,
        item: T,
        gsi_keys: dict[str, str] | None = None,
        check_version: bool = True,
    ) -> T:
        """Update an existing item with optimistic locking.

        The in-memory version is only advanced once the write succeeds, so a
        caller that loses the race still holds the version it read.

        Args:
            item: Model instance to update.
            gsi_keys: Optional GSI key values.
            check_version: Whether to check version for optimistic locking.

        Returns:
            The updated model instance.

        Raises:
            ConflictError: If version mismatch (concurrent modification).
        """
        old_version = item.version
        item.update_timestamp()
        db_item = self._build_item(item, gsi_keys)
        db_item["version"] = old_version + 1

        kwargs: dict[str, Any] = {"Item": db_item}
        if check_version:
            kwargs["ConditionExpression"] = "version = :old_version"
            kwargs["ExpressionAttributeValues"] = {":old_version": old_version}

        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ConflictError(
                    "Item was modified by another process",
                    conflict_type="version_mismatch",
                )
            logger.error("DynamoDB update failed", error=str(e))
            raise

        item.increment_version()

        logger.debug(
            "Item updated",
            pk=db_item["PK"],
            sk=db_item["SK"],
            version=item.version,
        )

        return item

    def delete(self, pk: str, sk: str) -> bool:
        """Delete an item.

        Args:
            pk: Partition key value.
            sk: Sort key value.

        Returns:
            True if deleted, False if not found.
        """
        try:
            self.table.delete_item(
                Key=self._build_key(pk, sk),
                ConditionExpression="attribute_exists(PK)",
            )
            logger.debug("Item deleted", pk=pk, sk=sk)
            return True

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            logger.error("DynamoDB delete_item failed", error=str(e))
            raise

    def query(
        self,
        pk: str,
        sk_begins_with: str | None = None,
        sk_lte: str | None = None,
        index_name: str | None = None,
        limit: int | None = None,
        scan_forward: bool = True,
        last_key: dict | None = None,
    ) -> tuple[list[T], dict | None]:
        """Query items by partition key.

        Args:
            pk: Partition key value.
            sk_begins_with: Sort key prefix for begins_with condition.
            sk_lte: Upper bound (inclusive) for the sort key.
            index_name: Optional GSI name.
            limit: Maximum items to return.
            scan_forward: Sort direction (True = ascending).
            last_key: Last evaluated key for pagination.

        Returns:
            Tuple of (items, last_evaluated_key).
        """
        pk_name, sk_name = _INDEX_KEYS.get(index_name, ("PK", "SK"))

        key_condition = f"{pk_name} = :pk"
        expr_values: dict[str, Any] = {":pk": pk}
        if sk_begins_with:
            key_condition += f" AND begins_with({sk_name}, :sk)"
            expr_values[":sk"] = sk_begins_with
        elif sk_lte:
            key_condition += f" AND {sk_name} <= :sk"
            expr_values[":sk"] = sk_lte

        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ExpressionAttributeValues": expr_values,
            "ScanIndexForward": scan_forward,
        }
        if index_name:
            kwargs["IndexName"] = index_name
        if limit:
            kwargs["Limit"] = limit
        if last_key:
            kwargs["ExclusiveStartKey"] = last_key

        try:
            response = self.table.query(**kwargs)
        except ClientError as e:
            logger.error("DynamoDB query failed", error=str(e), pk=pk)
            raise

        items = [self.model_class.from_dynamodb(item) for item in response.get("Items", [])]
        return items, response.get("LastEvaluatedKey")
