"""Pydantic models for stored records and API payloads."""

from models.customer import (  # noqa: F401
    AbandonedCart,
    ChannelTouchpoints,
    Customer,
    FollowUpSequence,
    Offer,
    PointOfContact,
    Touchpoints,
)
from models.nudge import (  # noqa: F401
    ManualNudgeResult,
    MissingTouchpoints,
    NudgeDetail,
    NudgeLogEntry,
    NudgeTrigger,
    PassSummary,
    RecipientResult,
)
from models.response import ApiResponse  # noqa: F401
from models.touchpoint import Channel, Touchpoint, TouchpointKind  # noqa: F401
