"""
Main application controller for IPFS Livestream.

Ties together configuration, logging, the IPFS store, the ffmpeg
recorder and the broadcast / watch engines, and translates SIGINT,
SIGTERM and the global hotkey into a clean end of broadcast.

Cross-platform: Windows, macOS, and Linux.
"""

import logging
import logging.handlers
import signal
import sys
import threading

import requests

from ipfs_livestream import __app_name__, __version__
from ipfs_livestream.broadcaster import Broadcaster
from ipfs_livestream.config import Config, get_log_path
from ipfs_livestream.hotkeys import StopHotkey
from ipfs_livestream.manifest import Manifest
from ipfs_livestream.recorder import FFmpegRecorder
from ipfs_livestream.store import IpfsStore
from ipfs_livestream.watcher import Watcher

logger = logging.getLogger(__name__)


class App:
    """Central orchestrator for the command-line entry points."""

    def __init__(self, config: Config | None = None) -> None:
        self.config = config or Config()
        self.store = IpfsStore(
            api_url=self.config.ipfs_api_url,
            gateway_url=self.config.ipfs_gateway_url,
            timeout=self.config.request_timeout,
        )
        self._stop = threading.Event()
        self._hotkey = StopHotkey(self.config.stop_hotkey, self.request_stop)
        self._logging_ready = False

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def broadcast(self, samples: int = 0) -> None:
        """Record and publish until *samples* segments (0 = until stopped)."""
        self._setup_logging()
        logger.info("%s %s starting broadcast.", __app_name__, __version__)
        self._apply_bootstrap_list()

        cfg = self.config
        broadcaster = Broadcaster(
            recorder=FFmpegRecorder(cfg.ffmpeg, cfg.video_device, cfg.audio_device),
            store=self.store,
            data_folder=cfg.samples_path,
            sample_duration=cfg.sample_duration,
            key=cfg.ipns_key,
            stop_event=self._stop,
        )
        self._install_signal_handlers()
        self._hotkey.register()
        try:
            broadcaster.broadcast(samples)
        finally:
            self._hotkey.unregister()
        print(f"Stream {broadcaster.identity} ended with "
              f"{len(broadcaster.manifest.segments)} segment(s).")

    def watch(self, stream_name: str) -> None:
        """Follow *stream_name* until its broadcaster ends the stream."""
        self._setup_logging()
        logger.info("%s %s starting watcher.", __app_name__, __version__)
        self._apply_bootstrap_list()

        cfg = self.config
        watcher = Watcher(
            store=self.store,
            data_folder=cfg.samples_path,
            poll_interval=cfg.sample_duration,
            host=cfg.sync_host,
            port=cfg.sync_port,
            on_update=self._print_update,
        )
        watcher.watch(stream_name)

    def request_stop(self) -> None:
        """End the broadcast after the segment currently being recorded."""
        if not self._stop.is_set():
            logger.info("Stop requested; finishing the current segment…")
        self._stop.set()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _print_update(manifest: Manifest) -> None:
        state = "ended" if manifest.ended else "live"
        print(f"[{state}] {len(manifest.segments)} segment(s)")
        if manifest.segments:
            print(f"  latest: /ipfs/{manifest.segments[-1]}")

    def _apply_bootstrap_list(self) -> None:
        peers = self.config.bootstrap_peers
        if not peers:
            return
        try:
            self.store.set_bootstrap_list(peers)
        except requests.RequestException as exc:
            logger.warning("Could not update the bootstrap list: %s", exc)

    def _install_signal_handlers(self) -> None:
        def _handler(sig, frame):
            self.request_stop()

        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)

    def _setup_logging(self) -> None:
        """Configure rotating file log and stderr handler."""
        if self._logging_ready:
            return
        log_path = get_log_path()
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

        # Rotating file handler
        max_bytes = self.config.max_log_size_mb * 1024 * 1024
        fh = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=max_bytes,
            backupCount=self.config.log_backup_count,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root_logger.addHandler(fh)

        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(level)
        sh.setFormatter(fmt)
        root_logger.addHandler(sh)
        self._logging_ready = True
