"""
Pytest configuration to ensure paths are set up correctly for tests.

This allows imports like `from handlers import health_check` to work
when running tests, simulating the Lambda environment where code
is deployed from the src/ directory.

It also provides in-memory stand-ins for the customer store, the nudge log
and the senders so the nudge service can run without AWS.
"""

import copy
import os
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path

import boto3
import pytest


def _ensure_paths_on_sys_path() -> None:
    """Add repository root AND src/ to sys.path if missing.

    The src/ directory is added to simulate Lambda's import behavior,
    where Code.from_asset("src") makes src/ the root of the package.
    """
    repo_root = Path(__file__).resolve().parents[1]
    src_root = repo_root / "src"

    # Add repo root first (for imports like infrastructure.*)
    root_str = str(repo_root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)

    # Add src/ for Lambda-style imports (from handlers import ...)
    src_str = str(src_root)
    if src_str not in sys.path:
        sys.path.insert(0, src_str)


_ensure_paths_on_sys_path()

# Ensure boto3 has offline-friendly defaults so tests do not require AWS access.
os.environ.setdefault("AWS_REGION", "eu-west-2")
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "test")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "test")
os.environ.setdefault("AWS_SESSION_TOKEN", "test")
os.environ.setdefault("ENVIRONMENT", "dev")

# Lambda environment variables used by handlers
os.environ.setdefault("CUSTOMERS_TABLE", "test-customers")
os.environ.setdefault("NUDGE_LOGS_TABLE", "test-nudge-logs")
os.environ.setdefault("NUDGE_DELIVERY_MODE", "console")

# Create a default boto3 session so resources/clients do not error during import.
boto3.setup_default_session(region_name="eu-west-2")

from config.settings import NudgeSettings  # noqa: E402
from models.customer import Customer  # noqa: E402
from services.notification_senders import SendResult  # noqa: E402
from services.nudge_service import NudgeService  # noqa: E402
from utils.error_handling import NotFoundError  # noqa: E402

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


class InMemoryCustomerStore:
    """Customer store keeping camelCase documents, like the DynamoDB table."""

    def __init__(self, customers=()):
        self._items = {}
        self._lock = threading.Lock()
        self.updates = []
        self.fail_on_update = False
        for customer in customers:
            self.put(customer)

    def put(self, customer: Customer) -> None:
        self._items[customer.customer_id] = customer.model_dump(by_alias=True)

    def raw(self, customer_id: str) -> dict:
        return self._items[customer_id]

    def list_all(self):
        with self._lock:
            return [Customer.model_validate(copy.deepcopy(item)) for item in self._items.values()]

    def get(self, customer_id):
        with self._lock:
            item = self._items.get(customer_id)
            return Customer.model_validate(copy.deepcopy(item)) if item else None

    def update_partial(self, customer_id, fields):
        if self.fail_on_update:
            raise RuntimeError("customer store unavailable")
        with self._lock:
            if customer_id not in self._items:
                raise NotFoundError(f"Customer {customer_id} not found")
            self.updates.append((customer_id, dict(fields)))
            for path, value in fields.items():
                target = self._items[customer_id]
                *parents, leaf = path.split(".")
                for segment in parents:
                    if target.get(segment) is None:
                        target[segment] = {}
                    target = target[segment]
                target[leaf] = value


class InMemoryLogSink:
    def __init__(self):
        self.entries = []
        self._lock = threading.Lock()

    def append(self, entry):
        with self._lock:
            self.entries.append(entry)

    def list_by_customer(self, customer_id):
        matches = [entry for entry in self.entries if entry.customer_id == customer_id]
        return sorted(matches, key=lambda entry: entry.sent_at, reverse=True)


class RecordingEmailSender:
    """Records every email; recipients listed in ``failing`` get an error."""

    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)
        self.fail_all = False
        self._lock = threading.Lock()

    def send_email(self, recipient, subject, html_body):
        with self._lock:
            self.sent.append({"to": recipient, "subject": subject, "body": html_body})
        if self.fail_all or recipient in self.failing:
            return SendResult(error="SES send failed: throttled")
        return SendResult(message_id=f"email-{len(self.sent)}")


class RecordingMessageSender:
    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)
        self.fail_all = False
        self._lock = threading.Lock()

    def send_message(self, recipient, body):
        with self._lock:
            self.sent.append({"to": recipient, "body": body})
        if self.fail_all or recipient in self.failing:
            return SendResult(error="WhatsApp API HTTP 503: unavailable")
        return SendResult(message_id=f"wa-{len(self.sent)}")


class FixedChoiceRandom:
    """random.Random stand-in whose choice() always returns the item at ``index``."""

    def __init__(self, index=0):
        self.index = index

    def choice(self, seq):
        return seq[self.index]


def make_customer(customer_id="cust-1", enable_all=False, **overrides) -> Customer:
    """Build a customer; every touchpoint off unless ``enable_all`` is set."""
    data = {
        "customerId": customer_id,
        "name": f"Store {customer_id}",
        "offer": {"discount": "12%", "cashback": 250, "allCustomersCanUseCode": True},
        "pointOfContact": {
            "name": "Priya",
            "email": [f"{customer_id}@example.com"],
            "phone": ["+447700900123"],
        },
        "touchpoints": {
            "referralWelcomePopup": enable_all,
            "extension": enable_all,
            "referralForm": enable_all,
            "whatsapp": {"whitelabeled": enable_all, "followUps": {"enabled": enable_all}},
            "email": {"whitelabeled": enable_all, "followUps": {"enabled": enable_all}},
            "sms": enable_all,
            "abandonedCart": {"email": enable_all, "whatsapp": enable_all},
        },
        "lastNudged": {},
    }
    data.update(overrides)
    return Customer.model_validate(data)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def customer_store():
    return InMemoryCustomerStore()


@pytest.fixture
def log_sink():
    return InMemoryLogSink()


@pytest.fixture
def email_sender():
    return RecordingEmailSender()


@pytest.fixture
def message_sender():
    return RecordingMessageSender()


@pytest.fixture
def nudge_settings():
    return NudgeSettings(delivery_mode="console", max_workers=2)


@pytest.fixture
def nudge_service(customer_store, log_sink, email_sender, message_sender, nudge_settings):
    return NudgeService(
        customer_store=customer_store,
        log_sink=log_sink,
        email_sender=email_sender,
        message_sender=message_sender,
        settings=nudge_settings,
        rng=FixedChoiceRandom(0),
    )
