"""Lightweight health check handler."""

import os
from datetime import datetime, timezone

from utils.error_handling import success_response


def lambda_handler(event, context):
    """Return a simple 200 response to verify the stack is alive."""
    return success_response(
        {
            "status": "ok",
            "environment": os.environ.get("ENVIRONMENT", "dev"),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
