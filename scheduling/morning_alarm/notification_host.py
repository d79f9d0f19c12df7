"""
Notification host boundary and its APScheduler-backed implementation
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger

from .models import NotificationContent, ScheduledItem

logger = logging.getLogger(__name__)

DeliveryListener = Callable[[str, NotificationContent], None]


class NotificationHost(Protocol):
    """Host primitives for one-shot delayed notifications"""

    def register(self, identifier: str, content: NotificationContent, delay_seconds: int) -> None:
        """Register a one-shot item firing after delay_seconds."""

    def cancel(self, identifier: str) -> None:
        """Remove the item registered under identifier, if any."""

    def list_scheduled(self) -> List[ScheduledItem]:
        """Return all pending items."""


class APSchedulerNotificationHost:
    """Delivers registered items from an in-process APScheduler scheduler"""

    def __init__(self, scheduler: Optional[BaseScheduler] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Args:
            scheduler: Scheduler to register jobs on; a BackgroundScheduler
                is created when omitted
            clock: Source of "now" that registration delays are measured from;
                share it with the NotificationScheduler computing the delays
        """
        self.scheduler = scheduler or BackgroundScheduler()
        self.clock = clock
        self._listener: Optional[DeliveryListener] = None
        self._listener_lock = threading.Lock()

    def start(self, paused: bool = False) -> None:
        if not self.scheduler.running:
            self.scheduler.start(paused=paused)
            logger.info("Notification host started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Notification host stopped")

    def set_delivery_listener(self, listener: Optional[DeliveryListener]) -> None:
        with self._listener_lock:
            self._listener = listener

    def register(self, identifier: str, content: NotificationContent, delay_seconds: int) -> None:
        run_date = self.clock() + timedelta(seconds=delay_seconds)
        self.scheduler.add_job(
            self._deliver,
            trigger=DateTrigger(run_date=run_date),
            id=identifier,
            kwargs={
                "identifier": identifier,
                "title": content.title,
                "body": content.body,
                "sound": content.sound,
                "data": dict(content.data),
                "delay_seconds": delay_seconds,
            },
            replace_existing=True,
            misfire_grace_time=None  # Deliver late rather than drop
        )
        logger.debug(f"Registered {identifier} to fire at {run_date.isoformat()}")

    def cancel(self, identifier: str) -> None:
        try:
            self.scheduler.remove_job(identifier)
            logger.debug(f"Cancelled {identifier}")
        except JobLookupError:
            logger.debug(f"Nothing registered under {identifier}")

    def list_scheduled(self) -> List[ScheduledItem]:
        items = []
        for job in self.scheduler.get_jobs():
            kwargs = job.kwargs
            if "delay_seconds" not in kwargs:
                continue
            items.append(ScheduledItem(
                identifier=job.id,
                content=NotificationContent(
                    title=kwargs["title"],
                    body=kwargs["body"],
                    sound=kwargs.get("sound"),
                    data=kwargs.get("data", {}),
                ),
                delay_seconds=kwargs["delay_seconds"],
            ))
        return items

    def _deliver(self, identifier: str, title: str, body: str, sound: Optional[str],
                 data: dict, delay_seconds: int) -> None:
        content = NotificationContent(title=title, body=body, sound=sound, data=data)
        logger.info(f"Delivering {identifier} (registered {delay_seconds}s ahead)")

        with self._listener_lock:
            listener = self._listener
        if listener is None:
            logger.warning(f"No delivery listener installed, {identifier} dropped")
            return
        try:
            listener(identifier, content)
        except Exception as e:
            logger.error(f"Delivery listener failed for {identifier}: {e}")
