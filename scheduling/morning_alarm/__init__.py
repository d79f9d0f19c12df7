"""
Morning Alarm Module

Resolve a wake time, cache the morning audio locally and keep exactly one
alarm registered to play it.
"""

__version__ = "1.0.0"
__author__ = "Morning Alarm"

from .capabilities import Capabilities, resolve_capabilities
from .config import MorningAlarmConfig
from .errors import (
    MorningAlarmError, InvalidTimeFormat, InvalidInlineAsset, AssetTransferFailed,
    AssetNotPersisted, PermissionDenied, ScheduleRegistrationFailed, InvalidTransition
)
from .models import AlarmRequest, AssetKind, DeliveryTier, SchedulingSession, SchedulingStatus
from .orchestrator import SchedulingOrchestrator, build_orchestrator
from .trigger_time import compute_next_occurrence

__all__ = [
    "Capabilities",
    "resolve_capabilities",
    "MorningAlarmConfig",
    "MorningAlarmError",
    "InvalidTimeFormat",
    "InvalidInlineAsset",
    "AssetTransferFailed",
    "AssetNotPersisted",
    "PermissionDenied",
    "ScheduleRegistrationFailed",
    "InvalidTransition",
    "AlarmRequest",
    "AssetKind",
    "DeliveryTier",
    "SchedulingSession",
    "SchedulingStatus",
    "SchedulingOrchestrator",
    "build_orchestrator",
    "compute_next_occurrence",
]
