"""
Data models and enums for the morning alarm core
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, Field

ALARM_NOTIFICATION_ID = "morning-alarm"
ALARM_PAYLOAD_TYPE = "morning-alarm"


class SchedulingStatus(Enum):
    """Orchestrator state enumeration"""
    IDLE = "idle"
    SAVING = "saving"
    SCHEDULING = "scheduling"
    SCHEDULED = "scheduled"
    CANCELLING = "cancelling"
    ERROR = "error"


class AssetKind(Enum):
    """Kinds of locally cached media"""
    PLAYBACK = "playback"
    NOTIFICATION_SOUND = "notification-sound"


class DeliveryTier(Enum):
    """How much background delivery the host environment supports"""
    FULL = "full"
    FOREGROUND_ONLY = "foreground-only"
    NONE = "none"


class AlarmRequest(BaseModel):
    """One schedule attempt: wake time, who it is for, and where the audio comes from"""
    wake_time: str = Field(..., description="Wake time-of-day as HH:MM, 24h, device-local")
    name: str = Field(default="", description="Display name used in the notification body")
    audio_source: str = Field(default="", description="Inline data: URI or remote URL of the playback audio")
    notification_sound_source: Optional[str] = Field(
        None, description="Source for the notification sound; defaults to audio_source"
    )

    @property
    def sound_source(self) -> str:
        return self.notification_sound_source or self.audio_source


@dataclass
class NotificationContent:
    """What the host shows and plays when the alarm is delivered"""
    title: str
    body: str
    sound: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_morning_alarm(self) -> bool:
        return self.data.get("type") == ALARM_PAYLOAD_TYPE


@dataclass
class ScheduledItem:
    """A registration as the notification host reports it"""
    identifier: str
    content: NotificationContent
    delay_seconds: int


@dataclass
class ScheduledAlarm:
    """The single registered alarm"""
    identifier: str
    trigger_instant: datetime
    content: NotificationContent

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and API responses"""
        return {
            "identifier": self.identifier,
            "trigger_instant": self.trigger_instant.isoformat(),
            "title": self.content.title,
            "body": self.content.body,
            "sound": self.content.sound,
            "data": self.content.data,
        }


@dataclass
class ScheduleResult:
    """Outcome of a registration attempt"""
    success: bool
    scheduled_time: Optional[datetime] = None
    caveat: Optional[str] = None
    error: Optional[Exception] = None
    alarm: Optional[ScheduledAlarm] = None


@dataclass
class SchedulingSession:
    """Mutable session state owned by the orchestrator"""
    status: SchedulingStatus = SchedulingStatus.IDLE
    error: Optional[str] = None
    detail: Optional[str] = None
    trigger_instant: Optional[datetime] = None
    caveat: Optional[str] = None
    playback_path: Optional[str] = None
    alarm: Optional[ScheduledAlarm] = None

    def reset(self) -> None:
        """Drop everything a previous attempt left behind"""
        self.error = None
        self.detail = None
        self.trigger_instant = None
        self.caveat = None
        self.playback_path = None
        self.alarm = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and API responses"""
        return {
            "status": self.status.value,
            "error": self.error,
            "detail": self.detail,
            "trigger_instant": self.trigger_instant.isoformat() if self.trigger_instant else None,
            "caveat": self.caveat,
            "playback_path": self.playback_path,
            "alarm": self.alarm.to_dict() if self.alarm else None,
        }
