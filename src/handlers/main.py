"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

Why one Lambda?
- Reuses the DynamoDB and sender clients across routes while warm.
- Simpler to deploy while still keeping code organized by delegating to modules.
"""

from typing import Callable, Tuple

from utils.error_handling import error_response

from . import auto_nudge, health_check, manual_nudge, missing_touchpoints, nudge_logs


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the correct
    handler while keeping shared setup (logging, error handling) centralized.
    """
    method = event.get("requestContext", {}).get("http", {}).get("method", "")
    path = event.get("requestContext", {}).get("http", {}).get("path", "")
    route_key = f"{method.upper()} {path}"

    # Prefix match, so fixed paths must precede the parameterised ones.
    route_table: Tuple[Tuple[str, Callable], ...] = (
        ("GET /health", health_check.lambda_handler),
        ("GET /nudge/logs/", nudge_logs.lambda_handler),
        ("GET /nudge/customers-with-missing-touchpoints", missing_touchpoints.lambda_handler),
        ("POST /nudge/trigger-auto-nudges", auto_nudge.lambda_handler),
        ("POST /nudge/", manual_nudge.lambda_handler),
    )

    for prefix, handler in route_table:
        if route_key.startswith(prefix):
            return handler(event, context)

    return error_response(404, f"Route not found: {route_key}")
