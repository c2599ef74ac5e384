"""
Automatic nudge pass, triggered by the daily EventBridge schedule or
on demand via POST /nudge/trigger-auto-nudges.

When AUTO_NUDGE_FUNCTION_NAME is set (the API Lambda), the HTTP route hands
the pass to the scheduled Lambda asynchronously and returns 202; that Lambda
has the long timeout and a single reserved execution. Without it (local runs)
the pass runs inline and the summary is returned.
"""

import json
import os
import uuid
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from utils.error_handling import AppError, UnexpectedError, success_response, to_response
from utils.logging_config import get_logger

logger = get_logger(__name__)

# Event source used when the API Lambda dispatches a pass.
DISPATCH_SOURCE = "nudge.api"

_nudge_service: Optional["NudgeService"] = None
_lambda_client = None


def _get_nudge_service():
    """Lazy-load NudgeService."""
    global _nudge_service
    if _nudge_service is None:
        from services.nudge_service import build_nudge_service
        _nudge_service = build_nudge_service()
    return _nudge_service


def _get_lambda_client():
    """Lazy-load the Lambda client used for dispatch."""
    global _lambda_client
    if _lambda_client is None:
        import boto3
        _lambda_client = boto3.client("lambda")
    return _lambda_client


def _runs_inline(event) -> bool:
    return (
        event.get("source") in ("aws.events", DISPATCH_SOURCE)
        or event.get("detail-type") == "Scheduled Event"
    )


def _dispatch(function_name: str, correlation_id: str):
    """Start the pass on the scheduled Lambda without waiting for it."""
    try:
        _get_lambda_client().invoke(
            FunctionName=function_name,
            InvocationType="Event",
            Payload=json.dumps(
                {"source": DISPATCH_SOURCE, "correlationId": correlation_id}
            ).encode("utf-8"),
        )
    except (ClientError, BotoCoreError) as exc:
        logger.exception("Auto nudge dispatch failed", extra={"correlation_id": correlation_id})
        return to_response(UnexpectedError(f"Unexpected error: {exc}"))

    logger.info(
        "Auto nudge dispatched",
        extra={"correlation_id": correlation_id, "function_name": function_name},
    )
    return success_response({"status": "started", "correlationId": correlation_id}, status=202)


def lambda_handler(event, context):
    """Run one pass over every customer and return the summary."""
    event = event or {}
    correlation_id = event.get("correlationId") or str(uuid.uuid4())
    inline = _runs_inline(event)
    logger.info(
        "Auto nudge triggered",
        extra={"correlation_id": correlation_id, "source": event.get("source", "http")},
    )

    function_name = os.environ.get("AUTO_NUDGE_FUNCTION_NAME")
    if not inline and function_name:
        return _dispatch(function_name, correlation_id)

    try:
        summary = _get_nudge_service().run_daily_pass()
    except AppError as exc:
        return to_response(exc)
    except Exception as exc:
        logger.exception("Auto nudge pass failed", extra={"correlation_id": correlation_id})
        return to_response(UnexpectedError(f"Unexpected error: {exc}"))

    return success_response(summary)
