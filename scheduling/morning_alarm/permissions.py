"""
Notification permission gate
"""

import logging
from typing import Optional, Protocol

import click

from .capabilities import Capabilities
from .errors import PermissionDenied

logger = logging.getLogger(__name__)

GRANTED = "granted"
DENIED = "denied"
UNDETERMINED = "undetermined"


class PermissionBackend(Protocol):
    """Host permission primitives"""

    def get_status(self) -> str:
        """Return the current grant state without prompting."""

    def request(self) -> str:
        """Prompt the user once and return the resulting grant state."""


class StaticPermissionBackend:
    """Backend whose answer is fixed by configuration"""

    def __init__(self, status: str = GRANTED):
        self.status = status
        self.requests = 0

    def get_status(self) -> str:
        return self.status

    def request(self) -> str:
        self.requests += 1
        return self.status


class PromptPermissionBackend:
    """Asks on the terminal; remembers the answer for the life of the process"""

    def __init__(self, message: str = "Allow the morning alarm to notify you?"):
        self.message = message
        self._status = UNDETERMINED

    def get_status(self) -> str:
        return self._status

    def request(self) -> str:
        self._status = GRANTED if click.confirm(self.message, default=True) else DENIED
        return self._status


def create_permission_backend(mode: str) -> PermissionBackend:
    """Build the backend named by the permission_mode setting"""
    if mode == "prompt":
        return PromptPermissionBackend()
    return StaticPermissionBackend(GRANTED if mode == "granted" else DENIED)


class PermissionGate:
    """Decides whether a background alert may be delivered"""

    def __init__(self, backend: PermissionBackend, capabilities: Capabilities):
        self.backend = backend
        self.capabilities = capabilities
        self.last_error: Optional[PermissionDenied] = None

    def ensure_granted(self) -> bool:
        """
        Check the grant state and prompt at most once.

        Returns:
            True if delivery is permitted, False otherwise (including hosts
            that cannot notify at all)
        """
        self.last_error = None
        if not self.capabilities.can_notify:
            logger.info("Host has no notification capability, permission unavailable")
            self.last_error = PermissionDenied("Host has no notification capability")
            return False

        try:
            if self.backend.get_status() == GRANTED:
                logger.debug("Notification permission already granted")
                return True

            status = self.backend.request()
        except Exception as e:
            logger.error(f"Permission check failed: {e}")
            self.last_error = PermissionDenied(str(e))
            return False

        granted = status == GRANTED
        if granted:
            logger.info("Notification permission granted")
        else:
            logger.warning(f"Notification permission not granted (status: {status})")
            self.last_error = PermissionDenied(f"status: {status}")
        return granted
