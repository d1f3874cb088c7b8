"""Configuration management for IPFS Livestream.

Stores and retrieves user settings from a JSON config file
in the platform-appropriate application data directory.
"""

import json
import logging
from pathlib import Path
from typing import Any

from ipfs_livestream.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from ipfs_livestream.platform_utils import (
    get_data_dir as _platform_data_dir,
)
from ipfs_livestream.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "ffmpeg": "ffmpeg",
    "samples_path": "",  # Empty = platform data directory
    "sample_duration_seconds": 10,
    # ---- IPFS node ----
    "ipfs_api_url": "http://127.0.0.1:5001",
    "ipfs_gateway_url": "http://127.0.0.1:8080",
    "ipns_key": "self",
    "bootstrap_peers": [],  # Empty = keep the node's own list
    "request_timeout_seconds": 60,
    # ---- capture devices (blank = platform default) ----
    "video_device": "",
    "audio_device": "",
    # ---- watcher side responder ----
    "sync_host": "0.0.0.0",
    "sync_port": 8888,
    # ---- global hotkey that ends a broadcast ----
    "stop_hotkey": "ctrl+shift+f9",  # blank = no hotkey assigned
    # ---- logging ----
    "log_level": "INFO",
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = path or get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as fh:
                    stored = json.load(fh)
                # Merge stored values over defaults so new keys get defaults
                self._data = {**DEFAULT_CONFIG, **stored}
                logger.info("Configuration loaded from %s", self._path)
            except (json.JSONDecodeError, OSError, TypeError) as exc:
                logger.warning("Could not read config (%s); using defaults.", exc)
                self._data = dict(DEFAULT_CONFIG)
        else:
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.info("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- recording ----

    @property
    def ffmpeg(self) -> str:
        """Return the ffmpeg executable path."""
        return self._data.get("ffmpeg") or "ffmpeg"

    @ffmpeg.setter
    def ffmpeg(self, value: str) -> None:
        self._data["ffmpeg"] = value.strip() or "ffmpeg"

    @property
    def samples_path(self) -> Path:
        """Return the working directory for samples and the manifest."""
        stored = self._data.get("samples_path", "")
        return Path(stored) if stored else _platform_data_dir()

    @samples_path.setter
    def samples_path(self, value: str) -> None:
        self._data["samples_path"] = value.strip()

    @property
    def sample_duration(self) -> float:
        """Return the segment duration in seconds."""
        return float(self._data.get("sample_duration_seconds", 10))

    @sample_duration.setter
    def sample_duration(self, value: float) -> None:
        """Set the segment duration (minimum 1 s)."""
        self._data["sample_duration_seconds"] = max(1, value)

    @property
    def video_device(self) -> str:
        return self._data.get("video_device", "")

    @video_device.setter
    def video_device(self, value: str) -> None:
        self._data["video_device"] = value.strip()

    @property
    def audio_device(self) -> str:
        return self._data.get("audio_device", "")

    @audio_device.setter
    def audio_device(self, value: str) -> None:
        self._data["audio_device"] = value.strip()

    # ---- IPFS node ----

    @property
    def ipfs_api_url(self) -> str:
        """Return the base URL of the IPFS HTTP API."""
        return self._data.get("ipfs_api_url", DEFAULT_CONFIG["ipfs_api_url"])

    @ipfs_api_url.setter
    def ipfs_api_url(self, value: str) -> None:
        self._data["ipfs_api_url"] = value.strip().rstrip("/")

    @property
    def ipfs_gateway_url(self) -> str:
        """Return the base URL of the IPFS HTTP gateway."""
        return self._data.get("ipfs_gateway_url", DEFAULT_CONFIG["ipfs_gateway_url"])

    @ipfs_gateway_url.setter
    def ipfs_gateway_url(self, value: str) -> None:
        self._data["ipfs_gateway_url"] = value.strip().rstrip("/")

    @property
    def ipns_key(self) -> str:
        """Return the IPNS key name the manifest is published under."""
        return self._data.get("ipns_key") or "self"

    @ipns_key.setter
    def ipns_key(self, value: str) -> None:
        self._data["ipns_key"] = value.strip() or "self"

    @property
    def bootstrap_peers(self) -> list[str]:
        """Return the bootstrap multiaddrs to install (empty = leave as is)."""
        return self._data.get("bootstrap_peers", [])

    @bootstrap_peers.setter
    def bootstrap_peers(self, value: list[str]) -> None:
        self._data["bootstrap_peers"] = [p.strip() for p in value if p.strip()]

    @property
    def request_timeout(self) -> float:
        """Return the HTTP timeout for IPFS calls in seconds."""
        return float(self._data.get("request_timeout_seconds", 60))

    @request_timeout.setter
    def request_timeout(self, value: float) -> None:
        self._data["request_timeout_seconds"] = max(1, value)

    # ---- side responder ----

    @property
    def sync_host(self) -> str:
        return self._data.get("sync_host", "0.0.0.0")

    @sync_host.setter
    def sync_host(self, value: str) -> None:
        self._data["sync_host"] = value.strip() or "0.0.0.0"

    @property
    def sync_port(self) -> int:
        """Return the port the watcher's /sync responder listens on."""
        return int(self._data.get("sync_port", 8888))

    @sync_port.setter
    def sync_port(self, value: int) -> None:
        """Set the responder port (0 lets the OS choose)."""
        self._data["sync_port"] = min(65535, max(0, int(value)))

    # ---- hotkey ----

    @property
    def stop_hotkey(self) -> str:
        """Return the hotkey combo that ends a broadcast."""
        return self._data.get("stop_hotkey", "")

    @stop_hotkey.setter
    def stop_hotkey(self, value: str) -> None:
        self._data["stop_hotkey"] = value.strip().lower()

    # ---- logging ----

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._data["log_level"] = value

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return int(self._data.get("max_log_size_mb", 10))

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._data["max_log_size_mb"] = max(1, int(value))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return int(self._data.get("log_backup_count", 3))

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        """Set the number of rotated log backups to keep."""
        self._data["log_backup_count"] = max(0, int(value))
