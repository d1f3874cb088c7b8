"""
Stream watcher for IPFS Livestream.

Polls a broadcaster's IPNS name for its manifest.  Each download is
fingerprinted; unchanged bytes mean the broadcaster has not published
anything new, so the watcher sleeps for one segment duration.  Changed
bytes replace the local view wholesale.  Watching ends once a manifest
with ``ended`` set has been read.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from ipfs_livestream.errors import ResolutionError
from ipfs_livestream.manifest import MANIFEST_FILENAME, Manifest, fingerprint
from ipfs_livestream.responder import ManifestResponder
from ipfs_livestream.store import ContentStore

logger = logging.getLogger(__name__)


class Watcher:
    """
    Follows a stream by polling its manifest.

    Parameters
    ----------
    store : ContentStore
        Resolves and downloads the stream name.
    data_folder : str or Path
        Where the downloaded ``sync.json`` is kept.
    poll_interval : float
        Sleep between unchanged polls until the manifest supplies its
        own segment duration.
    host, port :
        Bind address of the ``/sync`` responder.
    serve : bool
        Start the responder while watching.
    on_update : callable, optional
        Invoked with the new Manifest after every change.
    """

    def __init__(
        self,
        store: ContentStore,
        data_folder: str | Path,
        poll_interval: float = 10.0,
        host: str = "0.0.0.0",
        port: int = 8888,
        serve: bool = True,
        on_update: Callable[[Manifest], None] | None = None,
    ):
        self._store = store
        self.data_folder = Path(data_folder)
        self._default_interval = poll_interval
        self._host = host
        self._port = port
        self._serve = serve
        self._on_update = on_update
        self._lock = threading.Lock()
        self._manifest = Manifest()
        self._cache = b""
        self.updates = 0
        self.responder: ManifestResponder | None = None

    @property
    def manifest(self) -> Manifest:
        """Return the local view of the stream."""
        with self._lock:
            return self._manifest

    @property
    def manifest_path(self) -> Path:
        return self.data_folder / MANIFEST_FILENAME

    @property
    def poll_interval(self) -> float:
        duration = self.manifest.segment_duration
        return duration if duration > 0 else self._default_interval

    def cached_manifest(self) -> bytes:
        """Return the raw bytes of the last manifest that changed the view."""
        with self._lock:
            return self._cache

    # ------------------------------------------------------------------

    def watch(self, stream_name: str) -> Manifest:
        """
        Follow *stream_name* until the broadcaster marks it ended.

        Returns the final view.  Raises ResolutionError when the name
        cannot be downloaded and FormatError for an unparsable manifest.
        """
        logger.info("Reading the stream %s", stream_name)
        self.data_folder.mkdir(parents=True, exist_ok=True)
        if self._serve:
            self.responder = ManifestResponder(
                self.cached_manifest, host=self._host, port=self._port
            )
            self.responder.start()
        try:
            self._poll(stream_name)
        finally:
            if self.responder is not None:
                self.responder.stop()
                self.responder = None
        logger.info("Stream ended")
        return self.manifest

    def _poll(self, stream_name: str) -> None:
        last_hash = ""
        while not self.manifest.ended:
            logger.info("Checking for updates...")
            self._store.download(stream_name, self.manifest_path)
            try:
                digest = fingerprint(self.manifest_path)
                data = self.manifest_path.read_bytes()
            except OSError as exc:
                raise ResolutionError(
                    f"Downloaded manifest unreadable at {self.manifest_path}: {exc}"
                ) from exc

            if digest == last_hash:
                logger.info("No updates from the streamer")
                time.sleep(self.poll_interval)
                continue

            view = Manifest.deserialize(data)
            last_hash = digest
            with self._lock:
                self._manifest = view
                self._cache = data
            self.updates += 1
            logger.info("Stream updated. Now contains %d parts", len(view.segments))
            if self._on_update:
                try:
                    self._on_update(view)
                except Exception:
                    logger.exception("Error in on_update callback")
