"""Handler for GET /nudge/logs/{customerId}."""

import uuid
from typing import Optional

from utils.error_handling import (
    AppError,
    UnexpectedError,
    ValidationError,
    success_response,
    to_response,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)

_nudge_service: Optional["NudgeService"] = None


def _get_nudge_service():
    """Lazy-load NudgeService."""
    global _nudge_service
    if _nudge_service is None:
        from services.nudge_service import build_nudge_service
        _nudge_service = build_nudge_service()
    return _nudge_service


def _customer_id(event) -> Optional[str]:
    path_params = event.get("pathParameters") or {}
    if path_params.get("customerId"):
        return path_params["customerId"]
    path = event.get("rawPath") or event.get("requestContext", {}).get("http", {}).get("path", "")
    prefix = "/nudge/logs/"
    if path.startswith(prefix):
        return path[len(prefix):].strip("/") or None
    return None


def lambda_handler(event, context):
    """Return one customer's nudge history, newest first."""
    correlation_id = str(uuid.uuid4())
    customer_id = _customer_id(event)

    try:
        if not customer_id:
            raise ValidationError("customerId is required")
        logs = _get_nudge_service().list_logs(customer_id)
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception("Listing nudge logs failed", extra={"correlation_id": correlation_id})
        return to_response(UnexpectedError(f"Unexpected error: {exc}"))

    logger.info(
        "Nudge logs served",
        extra={"correlation_id": correlation_id, "customer_id": customer_id, "count": len(logs)},
    )
    return success_response(logs)
