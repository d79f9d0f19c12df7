"""
Host capability description, resolved once at startup and handed to each component
"""

import logging
import os
from dataclasses import dataclass

from .config import MorningAlarmConfig
from .models import DeliveryTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    """What the host can do for us"""
    delivery_tier: DeliveryTier = DeliveryTier.FULL
    durable_storage: bool = True

    @property
    def can_notify(self) -> bool:
        return self.delivery_tier is not DeliveryTier.NONE

    @property
    def foreground_only(self) -> bool:
        return self.delivery_tier is DeliveryTier.FOREGROUND_ONLY


def resolve_capabilities(cfg: MorningAlarmConfig) -> Capabilities:
    """
    Resolve the capability description for this process.

    Durable storage is only reported when the media root can actually be
    created; otherwise the caches run in their degraded mode.

    Args:
        cfg: Morning alarm configuration

    Returns:
        Capabilities value
    """
    durable = cfg.capabilities.durable_storage
    if durable:
        try:
            os.makedirs(cfg.media.base_dir, exist_ok=True)
        except OSError as e:
            logger.warning(f"Media root {cfg.media.base_dir} is not writable, caching disabled: {e}")
            durable = False

    capabilities = Capabilities(delivery_tier=cfg.capabilities.delivery_tier, durable_storage=durable)
    logger.info(
        f"Resolved capabilities: delivery={capabilities.delivery_tier.value}, durable_storage={capabilities.durable_storage}"
    )
    return capabilities
