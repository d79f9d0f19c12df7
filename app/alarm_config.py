"""
Service configuration for the morning alarm app
Wraps the core configuration with the HTTP server settings
"""

import os
import logging
from dataclasses import dataclass

from dotenv import load_dotenv

from morning_alarm.config import MorningAlarmConfig

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


@dataclass
class AlarmServiceConfig:
    """Configuration for the alarm service"""

    core: MorningAlarmConfig
    host: str
    port: int
    cancel_on_shutdown: bool

    @classmethod
    def from_env(cls) -> "AlarmServiceConfig":
        """Create configuration from environment variables"""
        return cls(
            core=MorningAlarmConfig.from_env(),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8080")),
            cancel_on_shutdown=os.environ.get("CANCEL_ON_SHUTDOWN", "false").lower() == "true",
        )


def load_alarm_config() -> AlarmServiceConfig:
    """Load alarm service configuration"""
    config = AlarmServiceConfig.from_env()
    logger.debug(f"Loaded service config: media dir {config.core.media.base_dir}, port {config.port}")
    return config
