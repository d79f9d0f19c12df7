"""
Single one-shot alarm registration on the notification host
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Optional

from .capabilities import Capabilities
from .errors import ScheduleRegistrationFailed
from .models import (
    ALARM_NOTIFICATION_ID, ALARM_PAYLOAD_TYPE, NotificationContent, ScheduleResult, ScheduledAlarm
)
from .notification_host import NotificationHost

logger = logging.getLogger(__name__)

DEFAULT_SOUND = "default"
MIN_DELAY_S = 1
FOREGROUND_CAVEAT = "Notifications have limited background support here. Keep the app open for best results."


class NotificationScheduler:
    """Registers, replaces and cancels the one morning alarm"""

    def __init__(self, host: NotificationHost, capabilities: Capabilities,
                 clock: Callable[[], datetime] = datetime.now,
                 foreground_caveat: str = FOREGROUND_CAVEAT):
        self.host = host
        self.capabilities = capabilities
        self.identifier = ALARM_NOTIFICATION_ID
        self.foreground_caveat = foreground_caveat
        self._clock = clock

    def _now_for(self, instant: datetime) -> datetime:
        now = self._clock()
        if instant.tzinfo is not None and now.tzinfo is None:
            now = now.astimezone(instant.tzinfo)
        return now

    def schedule(self, trigger_instant: datetime, title: str, body: str,
                 sound_key: Optional[str] = None) -> ScheduleResult:
        """
        Replace any existing alarm with one firing at trigger_instant.

        The delay is computed at registration time and never drops below one
        second, so an instant that slipped into the past still fires.

        Args:
            trigger_instant: When the alarm should fire
            title: Notification title
            body: Notification body
            sound_key: Cached notification sound name; host default when None

        Returns:
            ScheduleResult; success with a caveat on foreground-only hosts
        """
        if not self.capabilities.can_notify:
            error = ScheduleRegistrationFailed("Host cannot deliver notifications")
            logger.error(str(error))
            return ScheduleResult(success=False, error=error)

        content = NotificationContent(
            title=title,
            body=body,
            sound=sound_key or DEFAULT_SOUND,
            data={"type": ALARM_PAYLOAD_TYPE},
        )

        try:
            if any(item.identifier == self.identifier for item in self.host.list_scheduled()):
                logger.info(f"Replacing existing registration {self.identifier}")
                self.host.cancel(self.identifier)

            now = self._now_for(trigger_instant)
            seconds_until = math.floor((trigger_instant - now).total_seconds())
            delay = max(MIN_DELAY_S, seconds_until)
            scheduled_time = trigger_instant if seconds_until >= MIN_DELAY_S else now + timedelta(seconds=delay)

            self.host.register(self.identifier, content, delay)
        except Exception as e:
            logger.error(f"Failed to register {self.identifier}: {e}")
            return ScheduleResult(success=False, error=ScheduleRegistrationFailed(str(e)))

        logger.info(
            f"Scheduled {self.identifier} for {scheduled_time.isoformat()} (in {delay}s)",
            extra={"delay_seconds": delay}
        )

        caveat = self.foreground_caveat if self.capabilities.foreground_only else None
        return ScheduleResult(
            success=True,
            scheduled_time=scheduled_time,
            caveat=caveat,
            alarm=ScheduledAlarm(self.identifier, scheduled_time, content),
        )

    def cancel(self) -> None:
        """Remove the alarm; nothing registered is fine"""
        try:
            self.host.cancel(self.identifier)
            logger.info(f"Cancelled {self.identifier}")
        except Exception as e:
            logger.error(f"Error cancelling alarm: {e}")

    def get_scheduled(self) -> Optional[datetime]:
        """
        Best-effort trigger instant of the registered alarm.

        Rebuilt as now + the delay stored at registration, so the answer
        drifts later the longer ago the alarm was registered.
        """
        try:
            for item in self.host.list_scheduled():
                if item.identifier == self.identifier:
                    return self._clock() + timedelta(seconds=item.delay_seconds)
        except Exception as e:
            logger.error(f"Error getting scheduled alarm: {e}")
        return None
