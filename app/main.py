import os
import asyncio
import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from morning_alarm import AlarmRequest, InvalidTransition, resolve_capabilities
from morning_alarm.delivery import AlarmDeliveryHandler, DeliveryPolicy, command_player
from morning_alarm.models import AssetKind
from morning_alarm.notification_host import APSchedulerNotificationHost
from morning_alarm.orchestrator import CANCELLABLE, SchedulingOrchestrator, build_orchestrator
from morning_alarm.trigger_time import format_alarm_date, format_alarm_time

from alarm_config import load_alarm_config

# Import structured logging utilities
from morning_alarm.logging_utils import setup_logging

# Configure structured logging based on environment variables
log_level = os.getenv("LOG_LEVEL", "INFO")
log_format = os.getenv("LOG_FORMAT", "text")
setup_logging(log_level=log_level, log_format=log_format)

logger = logging.getLogger(__name__)

# Global variables, owned by the lifespan
service_config = None
host: Optional[APSchedulerNotificationHost] = None
policy: Optional[DeliveryPolicy] = None
orchestrator: Optional[SchedulingOrchestrator] = None
flow_lock: Optional[asyncio.Lock] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    global service_config, host, policy, orchestrator, flow_lock

    logger.info("Starting morning alarm service")
    service_config = load_alarm_config()
    capabilities = resolve_capabilities(service_config.core)

    host = APSchedulerNotificationHost()
    host.start()

    orchestrator = build_orchestrator(service_config.core, capabilities, host)
    handler = AlarmDeliveryHandler(
        orchestrator.caches[AssetKind.PLAYBACK],
        command_player(service_config.core.player_command),
    )
    policy = DeliveryPolicy(handler).install(host)
    flow_lock = asyncio.Lock()
    logger.info("Morning alarm service started")

    yield  # Application runs here

    # Shutdown
    if service_config.cancel_on_shutdown and orchestrator.status in CANCELLABLE:
        orchestrator.cancel()
    orchestrator.detach()
    policy.close()
    host.shutdown()
    logger.info("Morning alarm service stopped")


app = FastAPI(title="Morning Alarm", lifespan=lifespan)


def _session_response() -> dict:
    session = orchestrator.session
    response = session.to_dict()
    if session.trigger_instant:
        response["display_time"] = format_alarm_time(session.trigger_instant)
        response["display_date"] = format_alarm_date(session.trigger_instant)
    return response


async def _run_flow(func, *args) -> dict:
    """Run one blocking flow off the event loop, one at a time"""
    if flow_lock.locked():
        raise HTTPException(status_code=409, detail="Another alarm operation is in progress")

    async with flow_lock:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, func, *args)
        except InvalidTransition as e:
            raise HTTPException(status_code=409, detail=str(e))
    return _session_response()


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/alarm")
async def get_alarm():
    """Current scheduling session and the registered alarm, if any."""
    scheduled = orchestrator.get_scheduled()
    response = _session_response()
    response["scheduled_at"] = scheduled.isoformat() if scheduled else None
    return response


@app.post("/alarm")
async def schedule_alarm(request: AlarmRequest):
    """Cache the audio and schedule (or replace) the morning alarm."""
    logger.info(f"Schedule requested for {request.wake_time}")
    return await _run_flow(orchestrator.schedule, request)


@app.post("/alarm/retry")
async def retry_alarm(request: AlarmRequest):
    """Restart the whole flow after an error."""
    return await _run_flow(orchestrator.retry, request)


@app.delete("/alarm")
async def cancel_alarm():
    """Cancel the alarm and delete the cached audio."""
    logger.info("Cancel requested")
    return await _run_flow(orchestrator.cancel)


if __name__ == "__main__":
    import uvicorn

    config = load_alarm_config()
    logger.info(f"Starting morning alarm service on port {config.port}")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level="info",
        access_log=False
    )
