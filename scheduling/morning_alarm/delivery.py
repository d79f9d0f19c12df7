"""
What happens when the alarm is delivered: presentation policy and playback
"""

import logging
import shlex
import subprocess
from typing import Callable, List, Optional

from .media_cache import MediaCache
from .models import NotificationContent

logger = logging.getLogger(__name__)

Player = Callable[[str], None]
Alert = Callable[[NotificationContent], None]


def command_player(command: str) -> Player:
    """Build a player that runs an external command on the cached file"""
    argv = shlex.split(command)

    def play(path: str) -> None:
        result = subprocess.run(argv + [path], capture_output=True, text=True)
        if result.returncode != 0:
            logger.warning(f"Player exited with {result.returncode}: {result.stderr.strip()}")

    return play


def log_alert(content: NotificationContent) -> None:
    logger.warning(f"ALARM: {content.title} {content.body}")


class AlarmDeliveryHandler:
    """Plays the cached morning audio for a delivered alarm"""

    def __init__(self, playback_cache: MediaCache, player: Player):
        self.playback_cache = playback_cache
        self.player = player

    def handle(self, content: NotificationContent) -> Optional[str]:
        """
        Play the cached audio for a delivered alarm.

        Returns:
            The played path, or None if the payload is not ours, nothing is
            cached, or playback failed
        """
        if not content.is_morning_alarm:
            logger.debug(f"Ignoring unrelated notification: {content.title}")
            return None

        path = self.playback_cache.load()
        if not path:
            logger.warning("Alarm delivered but no cached audio found")
            return None

        try:
            self.player(path)
        except Exception as e:
            logger.error(f"Error playing alarm audio: {e}")
            return None

        logger.info(f"Played alarm audio from {path}")
        return path


class DeliveryPolicy:
    """
    Presentation policy for delivered notifications.

    Created by the application at startup and installed on the host for as
    long as it is open; close() (or leaving the with-block) uninstalls it.
    """

    def __init__(self, handler: AlarmDeliveryHandler, show_alert: bool = True,
                 play_sound: bool = True,
                 alert: Alert = log_alert):
        self.handler = handler
        self.show_alert = show_alert
        self.play_sound = play_sound
        self._alert = alert
        self._host = None
        self._delivered_callbacks: List[Callable[[str], None]] = []

    def install(self, host) -> "DeliveryPolicy":
        host.set_delivery_listener(self.on_delivery)
        self._host = host
        logger.info("Delivery policy installed")
        return self

    def close(self) -> None:
        if self._host is not None:
            self._host.set_delivery_listener(None)
            self._host = None
            logger.info("Delivery policy removed")

    def __enter__(self) -> "DeliveryPolicy":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def add_delivered_callback(self, callback: Callable[[str], None]) -> None:
        self._delivered_callbacks.append(callback)

    def on_delivery(self, identifier: str, content: NotificationContent) -> None:
        if self.show_alert:
            self._alert(content)
        if self.play_sound:
            self.handler.handle(content)
        for callback in list(self._delivered_callbacks):
            callback(identifier)
