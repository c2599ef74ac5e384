"""
Environment-specific configuration settings.

Cost-optimized defaults for development/testing.
"""

from dataclasses import dataclass
import os


@dataclass
class Settings:
    """Deployment settings with cost-optimized defaults."""

    # Environment
    environment: str = "dev"
    aws_region: str = "eu-west-2"  # Default AWS region

    # Delivery
    delivery_mode: str = "console"  # "live" sends through SES and WhatsApp
    email_from: str = "success@referrush.com"
    whatsapp_api_url: str = "https://api.whatsapp-provider.com/send"

    # Daily pass, UTC hour
    schedule_hour: int = 9

    # Lambda Configuration
    lambda_memory_mb: int = 512
    lambda_timeout_seconds: int = 30
    auto_nudge_timeout_seconds: int = 900
    max_workers: int = 4

    @classmethod
    def from_environment(cls) -> "Settings":
        """Load settings from environment variables."""
        env = os.environ.get("ENVIRONMENT", "dev")
        overrides = {
            "email_from": os.environ.get("EMAIL_FROM", cls.email_from),
            "whatsapp_api_url": os.environ.get("WHATSAPP_API_URL", cls.whatsapp_api_url),
            "schedule_hour": int(os.environ.get("NUDGE_SCHEDULE_HOUR", cls.schedule_hour)),
        }

        # Production overrides
        if env == "prod":
            return cls(
                environment="prod",
                delivery_mode="live",
                lambda_memory_mb=1024,
                lambda_timeout_seconds=60,
                max_workers=8,
                **overrides,
            )

        return cls(
            environment=env,
            delivery_mode=os.environ.get("NUDGE_DELIVERY_MODE", "console"),
            **overrides,
        )
