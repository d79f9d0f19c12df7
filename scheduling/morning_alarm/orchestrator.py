"""
Orchestrator for the save -> schedule and cancel flows
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from .config import NotificationSettings
from .errors import InvalidTimeFormat, InvalidTransition
from .logging_utils import log_phase_start, log_phase_end, log_state_change, log_error
from .media_cache import MediaCache
from .models import AlarmRequest, AssetKind, SchedulingSession, SchedulingStatus
from .notifications import NotificationScheduler
from .permissions import PermissionGate
from .trigger_time import compute_next_occurrence

logger = logging.getLogger(__name__)

ERROR_INVALID_REQUEST = "invalid request"
ERROR_ASSET_SAVE = "asset save failed"
ERROR_PERMISSION = "permission denied"
ERROR_SCHEDULE = "schedule failed"
ERROR_INTERRUPTED = "interrupted"

IN_FLIGHT = (SchedulingStatus.SAVING, SchedulingStatus.SCHEDULING, SchedulingStatus.CANCELLING)
CANCELLABLE = (SchedulingStatus.SCHEDULED, SchedulingStatus.ERROR)

SessionListener = Callable[[SchedulingSession], None]


class SchedulingOrchestrator:
    """State machine owning the single scheduling session"""

    def __init__(self, caches: Dict[AssetKind, MediaCache], permission_gate: PermissionGate,
                 scheduler: NotificationScheduler,
                 notification: Optional[NotificationSettings] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the orchestrator.

        Args:
            caches: One media cache per asset kind
            permission_gate: Notification permission gate
            scheduler: Notification scheduler for the single alarm
            notification: Title and body settings
            clock: Source of "now" for wake time resolution
        """
        self.caches = caches
        self.permission_gate = permission_gate
        self.scheduler = scheduler
        self.notification = notification or NotificationSettings()
        self.session = SchedulingSession()
        self._clock = clock
        self._attached = True
        self._listeners: List[SessionListener] = []

    @property
    def status(self) -> SchedulingStatus:
        return self.session.status

    @property
    def attached(self) -> bool:
        return self._attached

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def attach(self) -> None:
        """
        Resume observing the session.

        A flow that was detached mid-step never recorded its outcome, so an
        in-flight status is settled as an interrupted error. From there the
        caller can retry, schedule again, or cancel whatever was left behind.
        """
        self._attached = True
        if self.session.status in IN_FLIGHT:
            self._fail(ERROR_INTERRUPTED, "The previous alarm operation was interrupted. Please try again.")

    def detach(self) -> None:
        """
        Stop observing the session.

        Steps already running finish, but their outcome is no longer written
        to the session.
        """
        self._attached = False
        logger.info("Scheduling session detached")

    def _transition(self, new_status: SchedulingStatus) -> bool:
        if not self._attached:
            logger.info(f"Session detached, dropping transition to {new_status.value}")
            return False

        old_status = self.session.status
        self.session.status = new_status
        log_state_change(logger, old_status.value, new_status.value, error=self.session.error)

        for listener in list(self._listeners):
            try:
                listener(self.session)
            except Exception as e:
                logger.warning(f"Session listener failed: {e}")
        return True

    def _fail(self, error: str, detail: str) -> SchedulingSession:
        if self._attached:
            self.session.error = error
            self.session.detail = detail
            logger.warning(f"Scheduling failed: {error} ({detail})")
        self._transition(SchedulingStatus.ERROR)
        return self.session

    def schedule(self, request: AlarmRequest) -> SchedulingSession:
        """
        Run the full save -> permission -> register flow.

        Allowed from Idle, Error (as a retry) and Scheduled (replacing the
        current plan).

        Raises:
            InvalidTransition: if another flow is in flight
        """
        if self.session.status in IN_FLIGHT:
            raise InvalidTransition("schedule", self.session.status)
        return self._run(request)

    def retry(self, request: AlarmRequest) -> SchedulingSession:
        """Restart the whole flow after an error"""
        if self.session.status is not SchedulingStatus.ERROR:
            raise InvalidTransition("retry", self.session.status)
        return self._run(request)

    def _run(self, request: AlarmRequest) -> SchedulingSession:
        if self._attached:
            self.session.reset()
        total_start_time = time.time()

        if not request.audio_source:
            return self._fail(ERROR_INVALID_REQUEST, "No audio available to schedule.")
        if not request.wake_time:
            return self._fail(ERROR_INVALID_REQUEST, "No wake-up time specified.")

        try:
            trigger_instant = compute_next_occurrence(request.wake_time, self._clock())
        except InvalidTimeFormat as e:
            return self._fail(ERROR_INVALID_REQUEST, str(e))

        # Saving
        if not self._transition(SchedulingStatus.SAVING):
            return self.session
        log_phase_start(logger, "save")
        save_start = time.time()

        playback_path, sound_name = self._save_assets(request)

        log_phase_end(logger, "save", int((time.time() - save_start) * 1000), playback_path is not None)
        if not self._attached:
            return self.session
        if playback_path is None:
            return self._fail(ERROR_ASSET_SAVE, "Failed to save audio. Please try again.")
        self.session.playback_path = playback_path

        # Scheduling
        if not self._transition(SchedulingStatus.SCHEDULING):
            return self.session
        log_phase_start(logger, "permission")
        granted = self.permission_gate.ensure_granted()
        log_phase_end(logger, "permission", None, granted)
        if not self._attached:
            return self.session
        if not granted:
            return self._fail(ERROR_PERMISSION, "Notification permissions are required to schedule your morning alarm.")

        log_phase_start(logger, "register")
        result = self.scheduler.schedule(
            trigger_instant,
            self.notification.title,
            self.notification.render_body(request.name),
            sound_name,
        )
        log_phase_end(logger, "register", None, result.success)
        if not self._attached:
            return self.session
        if not result.success:
            return self._fail(ERROR_SCHEDULE, "Failed to schedule alarm. Please try again.")

        self.session.trigger_instant = result.scheduled_time
        self.session.caveat = result.caveat
        self.session.alarm = result.alarm
        self._transition(SchedulingStatus.SCHEDULED)

        logger.info(
            f"Alarm scheduled for {result.scheduled_time.isoformat()} in {int((time.time() - total_start_time) * 1000)}ms",
            extra={"caveat": result.caveat}
        )
        return self.session

    def _save_assets(self, request: AlarmRequest) -> Tuple[Optional[str], Optional[str]]:
        """Save both kinds in parallel; their paths are disjoint"""
        sources = {
            AssetKind.PLAYBACK: request.audio_source,
            AssetKind.NOTIFICATION_SOUND: request.sound_source,
        }
        results: Dict[AssetKind, Optional[str]] = {}

        with ThreadPoolExecutor(max_workers=len(sources), thread_name_prefix="media-save") as pool:
            futures = {kind: pool.submit(self.caches[kind].save, source) for kind, source in sources.items()}
            for kind, future in futures.items():
                try:
                    results[kind] = future.result()
                except Exception as e:
                    log_error(logger, kind.value, e, {"operation": "save"})
                    results[kind] = None

        return results[AssetKind.PLAYBACK], results[AssetKind.NOTIFICATION_SOUND]

    def cancel(self) -> SchedulingSession:
        """
        Tear down the registration and both cached assets.

        Each teardown step is best-effort; one failing does not stop the
        others. Allowed from Error too: a failed replacement leaves the
        previous registration live while its audio is already gone.

        Raises:
            InvalidTransition: unless the session is Scheduled or Error
        """
        if self.session.status not in CANCELLABLE:
            raise InvalidTransition("cancel", self.session.status)

        if not self._transition(SchedulingStatus.CANCELLING):
            return self.session
        self.session.caveat = None

        steps = [
            ("unregister", self.scheduler.cancel),
            ("remove playback", self.caches[AssetKind.PLAYBACK].remove),
            ("remove notification sound", self.caches[AssetKind.NOTIFICATION_SOUND].remove),
        ]
        for name, step in steps:
            try:
                step()
            except Exception as e:
                log_error(logger, name, e, {"operation": "cancel"})

        if self._attached:
            self.session.reset()
        self._transition(SchedulingStatus.IDLE)
        return self.session

    def get_scheduled(self) -> Optional[datetime]:
        return self.scheduler.get_scheduled()


def build_orchestrator(cfg, capabilities, host, permission_backend=None,
                       clock: Callable[[], datetime] = datetime.now) -> SchedulingOrchestrator:
    """
    Wire the core components from configuration.

    Args:
        cfg: MorningAlarmConfig
        capabilities: Resolved host capabilities
        host: Notification host
        permission_backend: Permission backend; built from cfg.permission_mode when None
        clock: Source of "now"

    Returns:
        A ready orchestrator in the Idle state
    """
    from .media_cache import create_media_caches
    from .permissions import create_permission_backend

    caches = create_media_caches(cfg.media, capabilities)
    gate = PermissionGate(permission_backend or create_permission_backend(cfg.permission_mode), capabilities)
    scheduler = NotificationScheduler(host, capabilities, clock=clock,
                                      foreground_caveat=cfg.notification.foreground_caveat)
    return SchedulingOrchestrator(caches, gate, scheduler, cfg.notification, clock=clock)
