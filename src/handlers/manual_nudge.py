"""Handler for POST /nudge/{customerId}/{touchpoint}/{channel}."""

from __future__ import annotations

import json
import uuid
from typing import Dict, Optional

from utils.error_handling import (
    AppError,
    UnexpectedError,
    ValidationError,
    success_response,
    to_response,
)
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy-loaded service to avoid import-time AWS clients
_nudge_service: Optional["NudgeService"] = None


def _get_nudge_service():
    """Lazy-load NudgeService."""
    global _nudge_service
    if _nudge_service is None:
        from services.nudge_service import build_nudge_service
        _nudge_service = build_nudge_service()
    return _nudge_service


def _path_params(event) -> Dict[str, str]:
    """Read path parameters, falling back to the raw path for proxy routes."""
    params = event.get("pathParameters") or {}
    if {"customerId", "touchpoint", "channel"} <= params.keys():
        return params

    path = event.get("rawPath") or event.get("requestContext", {}).get("http", {}).get("path", "")
    parts = [part for part in path.split("/") if part]
    if len(parts) == 4 and parts[0] == "nudge":
        return {"customerId": parts[1], "touchpoint": parts[2], "channel": parts[3]}
    return params


def _parse_body(event) -> Dict:
    try:
        payload = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def lambda_handler(event, context):
    """Send a touchpoint nudge to the given recipients right away."""
    correlation_id = str(uuid.uuid4())
    params = _path_params(event)

    try:
        customer_id = params.get("customerId")
        if not customer_id:
            raise ValidationError("customerId is required")
        payload = _parse_body(event)

        result = _get_nudge_service().nudge_now(
            customer_id=customer_id,
            touchpoint=params.get("touchpoint", ""),
            channel=params.get("channel", ""),
            recipients=payload.get("recipients"),
            message=payload.get("message"),
            subject=payload.get("subject"),
        )
    except AppError as exc:
        logger.warning(
            "Manual nudge rejected",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
        return to_response(exc)
    except Exception as exc:
        logger.exception("Manual nudge failed", extra={"correlation_id": correlation_id})
        return to_response(UnexpectedError(f"Unexpected error: {exc}"))

    logger.info(
        "Manual nudge served",
        extra={
            "correlation_id": correlation_id,
            "customer_id": customer_id,
            "success": result.success,
            "failed": result.failed,
        },
    )
    return success_response(result)
