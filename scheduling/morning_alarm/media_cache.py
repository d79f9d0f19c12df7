"""
Durable local cache for alarm media, one fixed file per asset kind
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .capabilities import Capabilities
from .config import MediaSettings
from .errors import InvalidInlineAsset, AssetTransferFailed, AssetNotPersisted
from .logging_utils import log_error
from .models import AssetKind
from .transfer import download_to_path

logger = logging.getLogger(__name__)

INLINE_PREFIX = "data:"
INLINE_ASSET_RE = re.compile(r"^data:([^;,\s]+);base64,([A-Za-z0-9+/]+={0,2})\Z")


@dataclass(frozen=True)
class CacheKindSpec:
    """Per-kind differences; everything else is shared"""
    directory: str
    file_name: str
    save_returns_file_name: bool
    degraded_passthrough: bool


KIND_SPECS: Dict[AssetKind, CacheKindSpec] = {
    AssetKind.PLAYBACK: CacheKindSpec(
        directory="morning-audio",
        file_name="morning-alarm.mp3",
        save_returns_file_name=False,
        degraded_passthrough=True,
    ),
    AssetKind.NOTIFICATION_SOUND: CacheKindSpec(
        directory="sounds",
        file_name="morning-alarm-notification.wav",
        save_returns_file_name=True,
        degraded_passthrough=False,
    ),
}


def is_inline_asset(source_ref: str) -> bool:
    return source_ref.startswith(INLINE_PREFIX)


def decode_inline_asset(source_ref: str) -> bytes:
    """
    Decode a data:<mime>;base64,<payload> reference.

    Raises:
        InvalidInlineAsset: if the reference does not match the grammar or the
            payload is empty or not base64
    """
    match = INLINE_ASSET_RE.match(source_ref)
    if not match:
        raise InvalidInlineAsset("Inline asset must look like data:<mime>;base64,<payload>")
    try:
        data = base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidInlineAsset(f"Inline asset payload is not valid base64: {e}") from e
    if not data:
        raise InvalidInlineAsset("Inline asset payload is empty")
    return data


class MediaCache:
    """Singleton file cache for one asset kind"""

    def __init__(self, kind: AssetKind, settings: MediaSettings, capabilities: Capabilities):
        """
        Initialize the cache for a kind.

        Args:
            kind: Asset kind served by this cache
            settings: Media settings (base directory, transfer limits)
            capabilities: Resolved host capabilities
        """
        self.kind = kind
        self.spec = KIND_SPECS[kind]
        self.settings = settings
        self.capabilities = capabilities
        self.last_error: Optional[Exception] = None

    @property
    def directory(self) -> Path:
        return Path(self.settings.base_dir) / self.spec.directory

    @property
    def path(self) -> Path:
        return self.directory / self.spec.file_name

    @property
    def sound_name(self) -> str:
        return self.spec.file_name

    def _log_extra(self) -> Dict[str, str]:
        return {"asset_kind": self.kind.value}

    def save(self, source_ref: str) -> Optional[str]:
        """
        Cache the asset behind source_ref at this kind's fixed path.

        Any previous asset is deleted first, so the kind never holds more than
        one file.

        Args:
            source_ref: Inline data: URI or remote URL

        Returns:
            Local path (playback) or sound file name (notification sound), or
            None if the asset could not be cached; last_error holds the cause
        """
        self.last_error = None

        if not self.capabilities.durable_storage:
            if self.spec.degraded_passthrough:
                logger.info("No durable storage, passing source through", extra=self._log_extra())
                return source_ref
            logger.info("No durable storage, asset kind unavailable", extra=self._log_extra())
            return None

        try:
            self._write(source_ref)
        except Exception as e:
            self.last_error = e
            log_error(logger, self.kind.value, e, {"operation": "save"})
            return None

        logger.info(f"Cached {self.kind.value} asset at {self.path}", extra=self._log_extra())
        return self.spec.file_name if self.spec.save_returns_file_name else str(self.path)

    def _write(self, source_ref: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

        target = self.path
        if target.exists():
            target.unlink(missing_ok=True)

        if is_inline_asset(source_ref):
            target.write_bytes(decode_inline_asset(source_ref))
        else:
            status = download_to_path(
                source_ref,
                target,
                timeout_s=self.settings.transfer_timeout_s,
                attempts=self.settings.transfer_attempts,
                chunk_size=self.settings.chunk_size,
            )
            if status != 200:
                raise AssetTransferFailed(source_ref, status_code=status)

        if not target.exists():
            raise AssetNotPersisted(f"{target} missing after write")

    def load(self) -> Optional[str]:
        """Return the cached asset path, or None when nothing is cached"""
        if not self.capabilities.durable_storage:
            return None
        try:
            if self.path.exists():
                return str(self.path)
        except OSError as e:
            logger.error(f"Could not inspect {self.path}: {e}", extra=self._log_extra())
        return None

    def remove(self) -> None:
        """Delete the cached asset; absent is fine"""
        if not self.capabilities.durable_storage:
            return
        try:
            self.path.unlink(missing_ok=True)
            logger.info(f"Removed {self.kind.value} asset", extra=self._log_extra())
        except OSError as e:
            logger.error(f"Could not remove {self.path}: {e}", extra=self._log_extra())


def create_media_caches(settings: MediaSettings, capabilities: Capabilities) -> Dict[AssetKind, MediaCache]:
    """One cache per asset kind"""
    return {kind: MediaCache(kind, settings, capabilities) for kind in AssetKind}
