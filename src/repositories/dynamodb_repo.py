"""DynamoDB repositories for customers and the nudge log."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

import boto3
from botocore.exceptions import ClientError
from pydantic import ValidationError as ModelValidationError

from models.customer import Customer
from models.nudge import NudgeLogEntry
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _to_dynamo(value: Any) -> Any:
    """Convert Python values into types boto3 can serialize."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: _to_dynamo(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamo(item) for item in value]
    return value


def build_update_expression(
    fields: Mapping[str, Any],
) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    """Turn ``{"a.b": 1}`` into a SET expression with placeholder names.

    Every path segment gets a ``#nX`` placeholder so reserved words such as
    ``name`` or ``email`` never collide with DynamoDB keywords.
    """
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    assignments: List[str] = []

    for index, (path, value) in enumerate(fields.items()):
        placeholders = []
        for segment in path.split("."):
            if segment not in names:
                names[segment] = f"#n{len(names)}"
            placeholders.append(names[segment])
        value_key = f":v{index}"
        values[value_key] = _to_dynamo(value)
        assignments.append(f"{'.'.join(placeholders)} = {value_key}")

    expression = "SET " + ", ".join(assignments)
    return expression, {placeholder: name for name, placeholder in names.items()}, values


def _parent_prefixes(paths: List[str]) -> List[List[str]]:
    """Group the proper prefixes of dotted paths by depth, shallowest first."""
    levels: Dict[int, List[str]] = {}
    for path in paths:
        segments = path.split(".")
        for depth in range(1, len(segments)):
            prefix = ".".join(segments[:depth])
            bucket = levels.setdefault(depth, [])
            if prefix not in bucket:
                bucket.append(prefix)
    return [levels[depth] for depth in sorted(levels)]


class CustomerRepository:
    """Keyed customer records with partial, path-based updates."""

    def __init__(self, table_name: str, dynamodb=None):
        self.table = (dynamodb or boto3.resource("dynamodb")).Table(table_name)

    def list_all(self) -> List[Customer]:
        """Scan the whole table, following pagination."""
        customers: List[Customer] = []
        scan_kwargs: Dict[str, Any] = {}
        while True:
            resp = self.table.scan(**scan_kwargs)
            for item in resp.get("Items", []):
                try:
                    customers.append(Customer.model_validate(item))
                except ModelValidationError as exc:
                    logger.warning(
                        "Skipping malformed customer record",
                        extra={"customer_id": item.get("customerId"), "error": str(exc)},
                    )
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return customers
            scan_kwargs["ExclusiveStartKey"] = last_key

    def get(self, customer_id: str) -> Optional[Customer]:
        resp = self.table.get_item(Key={"customerId": customer_id})
        item = resp.get("Item")
        return Customer.model_validate(item) if item else None

    def update_partial(self, customer_id: str, fields: Mapping[str, Any]) -> None:
        """Set the given dotted paths on an existing customer."""
        if not fields:
            return
        try:
            self._update(customer_id, fields)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == "ConditionalCheckFailedException":
                raise NotFoundError(f"Customer {customer_id} not found") from exc
            if code != "ValidationException":
                raise
            # Nested SET fails when a parent map (e.g. lastNudged) is absent.
            self._ensure_parent_maps(customer_id, list(fields))
            self._update(customer_id, fields)

    def _update(self, customer_id: str, fields: Mapping[str, Any]) -> None:
        expression, names, values = build_update_expression(fields)
        names["#pk"] = "customerId"
        self.table.update_item(
            Key={"customerId": customer_id},
            UpdateExpression=expression,
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
            ConditionExpression="attribute_exists(#pk)",
        )

    def _ensure_parent_maps(self, customer_id: str, paths: List[str]) -> None:
        for prefixes in _parent_prefixes(paths):
            names: Dict[str, str] = {}
            assignments = []
            for prefix in prefixes:
                placeholders = []
                for segment in prefix.split("."):
                    if segment not in names:
                        names[segment] = f"#p{len(names)}"
                    placeholders.append(names[segment])
                target = ".".join(placeholders)
                assignments.append(f"{target} = if_not_exists({target}, :empty)")
            self.table.update_item(
                Key={"customerId": customer_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ExpressionAttributeNames={p: n for n, p in names.items()},
                ExpressionAttributeValues={":empty": {}},
            )


class NudgeLogRepository:
    """Append-only nudge log, partitioned by customer and sorted by send time."""

    def __init__(self, table_name: str, dynamodb=None):
        self.table = (dynamodb or boto3.resource("dynamodb")).Table(table_name)

    def append(self, entry: NudgeLogEntry) -> None:
        """Insert an entry; the sort key makes same-instant entries distinct."""
        item = _to_dynamo(entry.model_dump(mode="json", by_alias=True, exclude_none=True))
        item["logId"] = f"{entry.sent_at.isoformat()}#{uuid.uuid4().hex[:12]}"
        self.table.put_item(
            Item=item,
            ConditionExpression="attribute_not_exists(logId)",
        )

    def list_by_customer(self, customer_id: str) -> List[NudgeLogEntry]:
        """Query every entry for a customer, newest first."""
        entries: List[NudgeLogEntry] = []
        query_kwargs: Dict[str, Any] = {
            "KeyConditionExpression": "customerId = :cid",
            "ExpressionAttributeValues": {":cid": customer_id},
            "ScanIndexForward": False,
        }
        while True:
            resp = self.table.query(**query_kwargs)
            entries.extend(NudgeLogEntry.model_validate(item) for item in resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return entries
            query_kwargs["ExclusiveStartKey"] = last_key
