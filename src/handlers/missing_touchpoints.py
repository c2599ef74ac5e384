"""Handler for GET /nudge/customers-with-missing-touchpoints."""

import uuid
from typing import Optional

from utils.error_handling import AppError, UnexpectedError, success_response, to_response
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


def lambda_handler(event, context):
    """List customers that still have touchpoints switched off."""
    correlation_id = str(uuid.uuid4())
    try:
        report = _get_nudge_service().customers_with_missing_touchpoints()
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception("Missing touchpoints report failed", extra={"correlation_id": correlation_id})
        return to_response(UnexpectedError(f"Unexpected error: {exc}"))

    logger.info(
        "Missing touchpoints served",
        extra={"correlation_id": correlation_id, "customers": len(report)},
    )
    return success_response(report)
