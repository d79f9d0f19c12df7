"""
Error taxonomy for the morning alarm core
"""


class MorningAlarmError(Exception):
    """Base class for all morning alarm errors"""


class InvalidTimeFormat(MorningAlarmError, ValueError):
    """Wake time is not a valid 24-hour HH:MM string"""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid wake time '{value}': expected HH:MM with hour 0-23 and minute 0-59")


class InvalidInlineAsset(MorningAlarmError):
    """Inline asset does not match data:<mime>;base64,<payload>"""


class AssetTransferFailed(MorningAlarmError):
    """Remote asset transfer did not report success"""

    def __init__(self, url: str, status_code=None, reason: str = ""):
        self.url = url
        self.status_code = status_code
        detail = f"status {status_code}" if status_code is not None else reason or "no response"
        super().__init__(f"Transfer of {url} failed ({detail})")


class AssetNotPersisted(MorningAlarmError):
    """Asset path is missing after the write completed"""


class PermissionDenied(MorningAlarmError):
    """Notification delivery permission was not granted"""


class ScheduleRegistrationFailed(MorningAlarmError):
    """Notification host refused or failed the registration"""


class InvalidTransition(MorningAlarmError):
    """Orchestrator event is not allowed in the current state"""

    def __init__(self, event: str, status):
        self.event = event
        self.status = status
        super().__init__(f"Cannot {event} while {status.value}")
