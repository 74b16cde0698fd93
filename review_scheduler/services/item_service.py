"""Review item service for DynamoDB operations."""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import boto3
from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from ..models.review_item import DetectedError, ItemType, ReviewItem, as_utc, to_iso
from .classification import classify_error_type, requires_spoken_answer, synthesize_content
from .config import SrsConfig

logger = Logger()

DUE_INDEX_NAME = "user_id-due-index"


class ItemServiceError(Exception):
    """Base exception for item service errors."""

    pass


class ItemNotFoundError(ItemServiceError):
    """Raised when no item with the given id is owned by the user."""

    pass


class InvalidItemError(ItemServiceError):
    """Raised when an item is rejected before being written."""

    pass


class ItemPersistenceError(ItemServiceError):
    """Raised when a DynamoDB read or write did not complete."""

    pass


class ConcurrentUpdateError(ItemPersistenceError):
    """Raised when the item changed between read and conditional write."""

    pass


VALID_ITEM_TYPES = ("vocab", "grammar_pattern", "sentence", "pronunciation")


class ItemService:
    """Service for review item DynamoDB operations."""

    def __init__(
        self,
        table_name: Optional[str] = None,
        dynamodb_resource=None,
        config: Optional[SrsConfig] = None,
    ):
        """Initialize ItemService.

        Args:
            table_name: DynamoDB table name. Defaults to ITEMS_TABLE env var.
            dynamodb_resource: Optional boto3 DynamoDB resource for testing.
            config: Scheduling tunables. Defaults to SrsConfig.from_env().
        """
        self.table_name = table_name or os.environ.get("ITEMS_TABLE", "review-items-dev")
        self.config = config or SrsConfig.from_env()

        if dynamodb_resource:
            self.dynamodb = dynamodb_resource
        else:
            endpoint_url = os.environ.get("AWS_ENDPOINT_URL")
            if endpoint_url:
                self.dynamodb = boto3.resource("dynamodb", endpoint_url=endpoint_url)
            else:
                self.dynamodb = boto3.resource("dynamodb")

        self.table = self.dynamodb.Table(self.table_name)

    def create_item(
        self,
        user_id: str,
        item_type: ItemType,
        content: Dict[str, Any],
        priority: int = 0,
        requires_spoken: bool = False,
        source_evaluation_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewItem:
        """Create a new review item, due one initial interval from now.

        Args:
            user_id: The owner's ID.
            item_type: vocab, grammar_pattern, sentence or pronunciation.
            content: Question/answer/context payload.
            priority: Queue priority, higher first.
            requires_spoken: Whether the answer must be spoken.
            source_evaluation_id: Evaluation that produced this item, if any.
            now: Creation time, defaults to current UTC time.

        Returns:
            Created ReviewItem.

        Raises:
            InvalidItemError: If item_type or content is invalid.
            ItemPersistenceError: If the write fails.
        """
        if item_type not in VALID_ITEM_TYPES:
            raise InvalidItemError(f"Invalid item type: {item_type}")
        if not isinstance(content, dict) or not content:
            raise InvalidItemError("Content must be a non-empty object")

        now = as_utc(now) if now is not None else datetime.now(timezone.utc)

        item = ReviewItem(
            user_id=user_id,
            item_type=item_type,
            content=content,
            ease_factor=self.config.initial_ease_factor,
            interval_days=self.config.initial_interval_days,
            due_at=now + timedelta(days=self.config.initial_interval_days),
            priority=priority,
            requires_spoken=requires_spoken,
            source_evaluation_id=source_evaluation_id,
            created_at=now,
        )

        try:
            self.table.put_item(
                Item=item.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(item_id)",
            )
        except ClientError as e:
            logger.error(f"Failed to create item for user_id {user_id}: {e}")
            raise ItemPersistenceError(f"Failed to create item: {e}")

        logger.info(f"Created {item_type} item {item.item_id} for user_id: {user_id}")
        return item

    def create_item_from_error(
        self,
        user_id: str,
        source_evaluation_id: str,
        error: DetectedError,
        user_level: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ReviewItem:
        """Create a high-priority review item from a detected learner error.

        The item type comes from the error type string, the content is
        synthesized from the error, and spoken answers are required for
        pronunciation and sentence items.
        """
        item_type = classify_error_type(error.type)
        content = synthesize_content(
            item_type,
            token=error.token,
            correction=error.correction,
            explanation=error.explanation,
            context=error.context,
            user_level=user_level,
            position=error.position,
        )
        return self.create_item(
            user_id=user_id,
            item_type=item_type,
            content=content,
            priority=self.config.error_item_priority,
            requires_spoken=requires_spoken_answer(item_type),
            source_evaluation_id=source_evaluation_id,
            now=now,
        )

    def get_item(self, user_id: str, item_id: str) -> ReviewItem:
        """Get an item by ID, scoped to its owner.

        Raises:
            ItemNotFoundError: If the user owns no item with that id.
            ItemPersistenceError: If the read fails.
        """
        try:
            response = self.table.get_item(
                Key={"user_id": user_id, "item_id": item_id},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise ItemPersistenceError(f"Failed to get item: {e}")

        if "Item" not in response:
            raise ItemNotFoundError(f"Item not found: {item_id}")
        return ReviewItem.from_dynamodb_item(response["Item"])

    def get_due_items(self, user_id: str, before: datetime) -> List[ReviewItem]:
        """Get every item of the user with due_at <= before.

        All pages are read; ordering and capping belong to the queue builder.
        """
        query_kwargs = {
            "IndexName": DUE_INDEX_NAME,
            "KeyConditionExpression": "user_id = :user_id AND due_at <= :before",
            "ExpressionAttributeValues": {
                ":user_id": user_id,
                ":before": to_iso(before),
            },
            "ScanIndexForward": True,
        }

        items: List[ReviewItem] = []
        try:
            while True:
                response = self.table.query(**query_kwargs)
                items.extend(ReviewItem.from_dynamodb_item(i) for i in response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                query_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as e:
            raise ItemPersistenceError(f"Failed to get due items: {e}")
        return items

    def get_next_due_item(self, user_id: str, after: datetime) -> Optional[ReviewItem]:
        """Get the item with the earliest due_at strictly after the given time."""
        try:
            response = self.table.query(
                IndexName=DUE_INDEX_NAME,
                KeyConditionExpression="user_id = :user_id AND due_at > :after",
                ExpressionAttributeValues={
                    ":user_id": user_id,
                    ":after": to_iso(after),
                },
                Limit=1,
                ScanIndexForward=True,
            )
        except ClientError as e:
            raise ItemPersistenceError(f"Failed to get next due item: {e}")

        items = response.get("Items", [])
        if not items:
            return None
        return ReviewItem.from_dynamodb_item(items[0])

    def save_review(self, item: ReviewItem, expected_version: int, write_explanation: bool) -> None:
        """Persist a reviewed item's scheduling state in one conditional write.

        The write only succeeds if the stored version still equals
        expected_version; the version is then incremented.

        Args:
            item: Item carrying the new scheduling state.
            expected_version: Version read before the update was computed.
            write_explanation: Set the explanation attribute as well. It is
                only written when absent in the store.

        Raises:
            ConcurrentUpdateError: If the item changed or vanished meanwhile.
            ItemPersistenceError: If the write fails for any other reason.
        """
        updated_at = item.updated_at or datetime.now(timezone.utc)
        update_parts = [
            "ease_factor = :ease_factor",
            "interval_days = :interval_days",
            "due_at = :due_at",
            "failure_count = :failure_count",
            "review_count = :review_count",
            "last_reviewed_at = :last_reviewed_at",
            "review_history = :review_history",
            "updated_at = :updated_at",
            "#version = :new_version",
        ]
        expression_values = {
            ":ease_factor": str(item.ease_factor),
            ":interval_days": str(item.interval_days),
            ":due_at": to_iso(item.due_at),
            ":failure_count": item.failure_count,
            ":review_count": item.review_count,
            ":last_reviewed_at": to_iso(item.last_reviewed_at or updated_at),
            ":review_history": item.review_history,
            ":updated_at": to_iso(updated_at),
            ":new_version": expected_version + 1,
            ":expected_version": expected_version,
        }

        if write_explanation and item.explanation is not None:
            update_parts.append("explanation = if_not_exists(explanation, :explanation)")
            expression_values[":explanation"] = item.explanation

        try:
            self.table.update_item(
                Key={"user_id": item.user_id, "item_id": item.item_id},
                UpdateExpression="SET " + ", ".join(update_parts),
                ConditionExpression="attribute_exists(item_id) AND #version = :expected_version",
                ExpressionAttributeNames={"#version": "version"},
                ExpressionAttributeValues=expression_values,
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.warning(
                    f"Concurrent update on item {item.item_id} (expected version {expected_version})"
                )
                raise ConcurrentUpdateError(f"Item was modified concurrently: {item.item_id}")
            logger.error(f"Failed to save review for item {item.item_id}: {e}")
            raise ItemPersistenceError(f"Failed to save review: {e}")

        item.version = expected_version + 1
