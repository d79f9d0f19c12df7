"""
Configuration models for the morning alarm core
"""

import os
import logging
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import DeliveryTier

logger = logging.getLogger(__name__)

# Use BASE_DIR for all file paths
BASE_DIR = os.getenv("BASE_DIR", "/data/morning-alarm")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class MediaSettings(BaseModel):
    """Where cached media lives and how remote audio is fetched"""
    base_dir: str = Field(default_factory=lambda: os.getenv("BASE_DIR", BASE_DIR), description="Root of the durable media directory")
    transfer_timeout_s: float = Field(default=30.0, ge=1.0, le=600.0, description="Deadline for one remote transfer")
    transfer_attempts: int = Field(default=1, ge=1, le=5, description="Transfer attempts on connection errors (1 = no retry)")
    chunk_size: int = Field(default=64 * 1024, ge=1024, description="Bytes per streamed chunk")


class CapabilitySettings(BaseModel):
    """Declared host capabilities, resolved once at startup"""
    delivery_tier: DeliveryTier = Field(default=DeliveryTier.FULL, description="full | foreground-only | none")
    durable_storage: bool = Field(default=True, description="Whether a durable local filesystem is available")


class NotificationSettings(BaseModel):
    """Text of the delivered alarm"""
    title: str = Field(default="Good Morning!", description="Notification title")
    body_template: str = Field(
        default="{name}, your personalized morning audio is ready.",
        description="Notification body; {name} is replaced by the display name"
    )
    foreground_caveat: str = Field(
        default="Notifications have limited background support here. Keep the app open for best results.",
        description="Message returned when delivery is foreground-only"
    )

    def render_body(self, name: str) -> str:
        return self.body_template.format(name=name or "Hey")


class MorningAlarmConfig(BaseModel):
    """Main configuration for the morning alarm core"""
    media: MediaSettings = Field(default_factory=MediaSettings, description="Media cache settings")
    capabilities: CapabilitySettings = Field(default_factory=CapabilitySettings, description="Host capabilities")
    notification: NotificationSettings = Field(default_factory=NotificationSettings, description="Notification text")
    permission_mode: Literal["granted", "denied", "prompt"] = Field(
        default="granted", description="How the permission backend answers"
    )
    player_command: str = Field(
        default="ffplay -nodisp -autoexit -loglevel quiet",
        description="Command used to play the cached audio at delivery time"
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json|text)")

    @classmethod
    def from_env(cls) -> "MorningAlarmConfig":
        """Create configuration from environment variables (and a .env file if present)"""
        load_dotenv()

        try:
            tier = DeliveryTier(os.getenv("DELIVERY_TIER", "full").strip().lower())
        except ValueError:
            logger.warning(f"Unknown DELIVERY_TIER '{os.getenv('DELIVERY_TIER')}', using 'full'")
            tier = DeliveryTier.FULL

        permission_mode = os.getenv("PERMISSION_MODE", "granted").strip().lower()
        if permission_mode not in ("granted", "denied", "prompt"):
            logger.warning(f"Unknown PERMISSION_MODE '{permission_mode}', using 'granted'")
            permission_mode = "granted"

        notification = NotificationSettings()
        if os.getenv("ALARM_TITLE"):
            notification.title = os.environ["ALARM_TITLE"]
        if os.getenv("ALARM_BODY_TEMPLATE"):
            notification.body_template = os.environ["ALARM_BODY_TEMPLATE"]

        return cls(
            media=MediaSettings(
                base_dir=os.getenv("BASE_DIR", BASE_DIR),
                transfer_timeout_s=float(os.getenv("MEDIA_TRANSFER_TIMEOUT_S", "30.0")),
                transfer_attempts=int(os.getenv("MEDIA_TRANSFER_ATTEMPTS", "1")),
            ),
            capabilities=CapabilitySettings(
                delivery_tier=tier,
                durable_storage=_env_bool("DURABLE_STORAGE", "true"),
            ),
            notification=notification,
            permission_mode=permission_mode,
            player_command=os.getenv("ALARM_PLAYER_CMD", "ffplay -nodisp -autoexit -loglevel quiet"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )
