"""
Tests for the media cache
"""

import base64
from pathlib import Path
from unittest.mock import patch

import pytest

from morning_alarm.capabilities import Capabilities
from morning_alarm.errors import AssetNotPersisted, AssetTransferFailed, InvalidInlineAsset
from morning_alarm.media_cache import MediaCache, decode_inline_asset, is_inline_asset
from morning_alarm.models import AssetKind, DeliveryTier

WAV_URI = "data:audio/wav;base64,AAAA"


def _fake_download(content: bytes, status: int = 200):
    def download(url, target, **kwargs):
        if status == 200:
            Path(target).write_bytes(content)
        return status
    return download


class TestInlineAssets:
    """Test inline asset grammar"""

    def test_is_inline_asset(self):
        assert is_inline_asset(WAV_URI)
        assert not is_inline_asset("https://example.com/a.mp3")

    def test_decode(self):
        assert decode_inline_asset(WAV_URI) == base64.b64decode("AAAA")

    @pytest.mark.parametrize("value", [
        "data:audio/wav;base64,",
        "data:audio/wav,AAAA",
        "data:;base64,AAAA",
        "data:audio/wav;base64,AA AA",
        "data:audio/wav;base64,AAAA\nAAAA",
        "data:audio/wav;base64,A",
    ])
    def test_decode_rejects_malformed(self, value):
        with pytest.raises(InvalidInlineAsset):
            decode_inline_asset(value)


class TestMediaCacheSave:
    """Test MediaCache.save"""

    def test_inline_save_writes_decoded_bytes(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        path = cache.save(WAV_URI)

        assert path == str(cache.path)
        assert Path(path).read_bytes() == base64.b64decode("AAAA")
        assert cache.last_error is None

    def test_creates_directory(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        assert not cache.directory.exists()
        cache.save(WAV_URI)
        assert cache.directory.is_dir()

    def test_notification_sound_returns_file_name(self, caches):
        cache = caches[AssetKind.NOTIFICATION_SOUND]
        assert cache.save(WAV_URI) == "morning-alarm-notification.wav"
        assert cache.path.exists()

    def test_kinds_use_disjoint_paths(self, caches):
        assert caches[AssetKind.PLAYBACK].path != caches[AssetKind.NOTIFICATION_SOUND].path

    def test_save_is_idempotent(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        cache.save(WAV_URI)
        cache.save(WAV_URI)

        files = list(cache.directory.iterdir())
        assert files == [cache.path]
        assert cache.path.read_bytes() == base64.b64decode("AAAA")

    def test_save_supersedes_previous_content(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        cache.save("data:audio/mpeg;base64," + base64.b64encode(b"first take").decode())
        cache.save("data:audio/mpeg;base64," + base64.b64encode(b"second").decode())

        assert cache.path.read_bytes() == b"second"
        assert len(list(cache.directory.iterdir())) == 1

    def test_invalid_inline_returns_none(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        assert cache.save("data:audio/wav;base64,") is None
        assert isinstance(cache.last_error, InvalidInlineAsset)

    def test_remote_save(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        with patch("morning_alarm.media_cache.download_to_path", side_effect=_fake_download(b"mp3 bytes")) as download:
            path = cache.save("https://cdn.example.com/morning.mp3")

        assert path == str(cache.path)
        assert cache.path.read_bytes() == b"mp3 bytes"
        download.assert_called_once()
        assert download.call_args.kwargs["timeout_s"] == 5.0

    def test_remote_failure_status(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        with patch("morning_alarm.media_cache.download_to_path", side_effect=_fake_download(b"", status=404)):
            assert cache.save("not-a-url") is None

        assert isinstance(cache.last_error, AssetTransferFailed)
        assert cache.last_error.status_code == 404
        assert cache.load() is None

    def test_remote_transfer_exception(self, caches):
        cache = caches[AssetKind.NOTIFICATION_SOUND]
        error = AssetTransferFailed("https://cdn.example.com/x.wav", reason="timed out")
        with patch("morning_alarm.media_cache.download_to_path", side_effect=error):
            assert cache.save("https://cdn.example.com/x.wav") is None
        assert cache.last_error is error

    def test_unresolvable_reference_fails_transfer(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        assert cache.save("just some text") is None
        assert isinstance(cache.last_error, AssetTransferFailed)

    def test_missing_after_write(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        with patch("morning_alarm.media_cache.download_to_path", return_value=200):
            assert cache.save("https://cdn.example.com/ghost.mp3") is None
        assert isinstance(cache.last_error, AssetNotPersisted)

    def test_failed_save_removes_previous_asset(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        cache.save(WAV_URI)
        assert cache.save("data:broken") is None
        assert cache.load() is None


class TestMediaCacheLoadRemove:
    """Test MediaCache.load and MediaCache.remove"""

    def test_load_after_save(self, caches):
        cache = caches[AssetKind.NOTIFICATION_SOUND]
        cache.save(WAV_URI)
        assert cache.load() == str(cache.path)

    def test_load_when_empty(self, caches):
        assert caches[AssetKind.PLAYBACK].load() is None

    def test_remove_then_load(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        cache.save(WAV_URI)
        cache.remove()
        assert cache.load() is None

    def test_remove_is_idempotent(self, caches):
        cache = caches[AssetKind.PLAYBACK]
        cache.remove()
        cache.remove()
        assert cache.load() is None

    def test_remove_only_touches_own_kind(self, caches):
        caches[AssetKind.PLAYBACK].save(WAV_URI)
        caches[AssetKind.NOTIFICATION_SOUND].save(WAV_URI)

        caches[AssetKind.PLAYBACK].remove()

        assert caches[AssetKind.PLAYBACK].load() is None
        assert caches[AssetKind.NOTIFICATION_SOUND].load() is not None

    def test_persists_across_instances(self, media_settings, capabilities):
        MediaCache(AssetKind.PLAYBACK, media_settings, capabilities).save(WAV_URI)
        reopened = MediaCache(AssetKind.PLAYBACK, media_settings, capabilities)
        assert reopened.load() == str(reopened.path)


class TestDegradedStorage:
    """Test behaviour without durable storage"""

    @pytest.fixture
    def degraded(self):
        return Capabilities(delivery_tier=DeliveryTier.FOREGROUND_ONLY, durable_storage=False)

    def test_playback_passes_source_through(self, media_settings, degraded):
        cache = MediaCache(AssetKind.PLAYBACK, media_settings, degraded)
        assert cache.save("https://cdn.example.com/morning.mp3") == "https://cdn.example.com/morning.mp3"
        assert not cache.path.exists()

    def test_notification_sound_unavailable(self, media_settings, degraded):
        cache = MediaCache(AssetKind.NOTIFICATION_SOUND, media_settings, degraded)
        assert cache.save(WAV_URI) is None
        assert cache.last_error is None

    def test_load_and_remove_are_noops(self, media_settings, degraded):
        cache = MediaCache(AssetKind.PLAYBACK, media_settings, degraded)
        cache.remove()
        assert cache.load() is None
