"""
Local handler tests using in-memory fakes.

These tests validate handler logic without connecting to AWS: the lazily
built NudgeService is replaced with one wired to the conftest fakes.

Run with: pytest tests/unit/test_handlers_local.py -v
"""

import json
from unittest.mock import MagicMock

import pytest

from conftest import NOW, make_customer


@pytest.fixture
def wired(monkeypatch, nudge_service, customer_store):
    """Point every handler's lazy service at the in-memory service."""
    from handlers import auto_nudge, manual_nudge, missing_touchpoints, nudge_logs

    for module in (auto_nudge, manual_nudge, missing_touchpoints, nudge_logs):
        monkeypatch.setattr(module, "_nudge_service", nudge_service)
    customer_store.put(make_customer())
    return nudge_service


def _nudge_event(customer_id="cust-1", touchpoint="extension", channel="email", body=None):
    return {
        "requestContext": {
            "http": {
                "method": "POST",
                "path": f"/nudge/{customer_id}/{touchpoint}/{channel}",
            }
        },
        "pathParameters": {
            "customerId": customer_id,
            "touchpoint": touchpoint,
            "channel": channel,
        },
        "body": body if isinstance(body, str) or body is None else json.dumps(body),
    }


class TestManualNudgeHandler:
    def test_sends_and_reports_tally(self, wired, email_sender):
        from handlers.manual_nudge import lambda_handler

        event = _nudge_event(body={"recipients": ["a@example.com", "oops"]})
        result = lambda_handler(event, None)

        assert result["statusCode"] == 200
        body = json.loads(result["body"])
        assert body["success"] is True
        assert body["data"]["success"] == 1
        assert body["data"]["failed"] == 1
        assert body["data"]["errors"] == ["Invalid email format: oops"]
        assert len(email_sender.sent) == 1

    def test_reads_params_from_path_when_missing(self, wired, email_sender):
        from handlers.manual_nudge import lambda_handler

        event = _nudge_event(body={"recipients": ["a@example.com"]})
        event.pop("pathParameters")
        result = lambda_handler(event, None)

        assert result["statusCode"] == 200
        assert email_sender.sent[0]["to"] == "a@example.com"

    def test_unknown_customer_returns_404(self, wired):
        from handlers.manual_nudge import lambda_handler

        result = lambda_handler(
            _nudge_event(customer_id="ghost", body={"recipients": ["a@example.com"]}), None
        )

        assert result["statusCode"] == 404
        body = json.loads(result["body"])
        assert body == {"success": False, "error": "Customer not found"}

    @pytest.mark.parametrize(
        "overrides, error",
        [
            ({"body": {"recipients": []}}, "Please provide at least one recipient"),
            ({"body": {}}, "Please provide at least one recipient"),
            ({"touchpoint": "sms", "body": {"recipients": ["a@example.com"]}}, "Invalid touchpoint specified"),
            ({"channel": "sms", "body": {"recipients": ["a@example.com"]}}, "Invalid channel specified"),
            ({"body": "{not json"}, "Request body must be valid JSON"),
        ],
    )
    def test_bad_requests_return_400(self, wired, overrides, error):
        from handlers.manual_nudge import lambda_handler

        result = lambda_handler(_nudge_event(**overrides), None)

        assert result["statusCode"] == 400
        assert json.loads(result["body"])["error"] == error

    def test_unexpected_errors_return_500(self, monkeypatch):
        from handlers import manual_nudge

        broken = MagicMock()
        broken.nudge_now.side_effect = RuntimeError("table missing")
        monkeypatch.setattr(manual_nudge, "_nudge_service", broken)

        result = manual_nudge.lambda_handler(
            _nudge_event(body={"recipients": ["a@example.com"]}), None
        )

        assert result["statusCode"] == 500
        assert "table missing" in json.loads(result["body"])["error"]


class TestNudgeLogsHandler:
    def test_returns_logs_in_camel_case(self, wired):
        from handlers.nudge_logs import lambda_handler

        wired.nudge_now("cust-1", "extension", "email", ["a@example.com"], now=NOW)
        event = {
            "requestContext": {"http": {"method": "GET", "path": "/nudge/logs/cust-1"}},
            "pathParameters": {"customerId": "cust-1"},
        }

        result = lambda_handler(event, None)

        assert result["statusCode"] == 200
        logs = json.loads(result["body"])["data"]
        assert len(logs) == 1
        assert logs[0]["customerId"] == "cust-1"
        assert logs[0]["touchpoint"] == "extension"
        assert logs[0]["trigger"] == "manual"

    def test_unknown_customer_returns_404(self, wired):
        from handlers.nudge_logs import lambda_handler

        event = {"requestContext": {"http": {"method": "GET", "path": "/nudge/logs/ghost"}}}
        result = lambda_handler(event, None)

        assert result["statusCode"] == 404


class TestMissingTouchpointsHandler:
    def test_lists_customers_with_gaps(self, wired):
        from handlers.missing_touchpoints import lambda_handler

        result = lambda_handler({}, None)

        assert result["statusCode"] == 200
        data = json.loads(result["body"])["data"]
        assert data[0]["customerId"] == "cust-1"
        assert "extension" in data[0]["issues"]
        assert data[0]["offerIssues"] == []


class TestAutoNudgeHandler:
    def test_scheduled_event_runs_pass(self, wired, log_sink):
        from handlers.auto_nudge import lambda_handler

        event = {"source": "aws.events", "detail-type": "Scheduled Event", "detail": {}}
        result = lambda_handler(event, None)

        assert result["statusCode"] == 200
        data = json.loads(result["body"])["data"]
        assert data["total"] == 9
        assert data["successful"] == 9
        assert len(data["details"]) == 9
        assert len(log_sink.entries) == 9

    def test_store_outage_returns_500(self, monkeypatch):
        from handlers import auto_nudge

        broken = MagicMock()
        broken.run_daily_pass.side_effect = RuntimeError("scan failed")
        monkeypatch.setattr(auto_nudge, "_nudge_service", broken)

        result = auto_nudge.lambda_handler({}, None)

        assert result["statusCode"] == 500

    def test_http_trigger_dispatches_to_scheduled_lambda(self, monkeypatch, log_sink, wired):
        from handlers import auto_nudge

        client = MagicMock()
        monkeypatch.setattr(auto_nudge, "_lambda_client", client)
        monkeypatch.setenv("AUTO_NUDGE_FUNCTION_NAME", "auto-nudge-fn")
        event = {
            "requestContext": {"http": {"method": "POST", "path": "/nudge/trigger-auto-nudges"}}
        }

        result = auto_nudge.lambda_handler(event, None)

        assert result["statusCode"] == 202
        assert json.loads(result["body"])["data"]["status"] == "started"
        kwargs = client.invoke.call_args.kwargs
        assert kwargs["FunctionName"] == "auto-nudge-fn"
        assert kwargs["InvocationType"] == "Event"
        assert json.loads(kwargs["Payload"])["source"] == auto_nudge.DISPATCH_SOURCE
        # Nothing ran inside the API Lambda.
        assert log_sink.entries == []

    def test_dispatched_event_runs_pass_inline(self, monkeypatch, log_sink, wired):
        from handlers import auto_nudge

        client = MagicMock()
        monkeypatch.setattr(auto_nudge, "_lambda_client", client)
        monkeypatch.setenv("AUTO_NUDGE_FUNCTION_NAME", "auto-nudge-fn")

        result = auto_nudge.lambda_handler(
            {"source": auto_nudge.DISPATCH_SOURCE, "correlationId": "abc"}, None
        )

        assert result["statusCode"] == 200
        assert len(log_sink.entries) == 9
        client.invoke.assert_not_called()

    def test_dispatch_failure_returns_500(self, monkeypatch):
        from botocore.exceptions import ClientError
        from handlers import auto_nudge

        client = MagicMock()
        client.invoke.side_effect = ClientError(
            {"Error": {"Code": "TooManyRequestsException", "Message": "Rate exceeded"}}, "Invoke"
        )
        monkeypatch.setattr(auto_nudge, "_lambda_client", client)
        monkeypatch.setenv("AUTO_NUDGE_FUNCTION_NAME", "auto-nudge-fn")

        result = auto_nudge.lambda_handler({}, None)

        assert result["statusCode"] == 500
