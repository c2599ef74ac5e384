"""Store and sink contracts the nudge service depends on."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol

from models.customer import Customer
from models.nudge import NudgeLogEntry


class CustomerStore(Protocol):
    def list_all(self) -> List[Customer]: ...

    def get(self, customer_id: str) -> Optional[Customer]: ...

    def update_partial(self, customer_id: str, fields: Mapping[str, Any]) -> None:
        """Set each dotted field path to its value; raise NotFoundError if missing."""
        ...


class NudgeLogSink(Protocol):
    def append(self, entry: NudgeLogEntry) -> None: ...

    def list_by_customer(self, customer_id: str) -> List[NudgeLogEntry]:
        """Entries for one customer, newest first."""
        ...
