"""
Broadcast engine for IPFS Livestream.

Records the screen one segment at a time.  While the next segment is
being recorded, the previous one is uploaded on a background thread;
when that upload finishes its CID is appended to the manifest and a
publication is requested through the :class:`SyncGuard`.

The loop ends when the sample limit is reached or the stop signal is
set.  It then uploads the last segment, waits for every outstanding
upload and publication, and publishes the manifest one final time with
``ended`` set so watchers know the stream is over.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

from ipfs_livestream.errors import (
    LivestreamError,
    MissingSegmentError,
    UploadError,
)
from ipfs_livestream.manifest import (
    MANIFEST_FILENAME,
    Manifest,
    atomic_write,
    now_stamp,
)
from ipfs_livestream.recorder import Recorder
from ipfs_livestream.store import ContentStore
from ipfs_livestream.sync_guard import SyncGuard

logger = logging.getLogger(__name__)

STAGGER_CAP_SECONDS = 10.0
DRAIN_INTERVAL_SECONDS = 5.0


class Broadcaster:
    """
    Drives the capture / upload / publish loop.

    Parameters
    ----------
    recorder : Recorder
        Produces one segment file per call.
    store : ContentStore
        Receives segments and the manifest; publishes the stable name.
    data_folder : str or Path
        Working directory for segment files and ``sync.json``.
    sample_duration : float
        Length of every segment in seconds.
    key : str
        Name the manifest is published under (IPNS key, ``self`` by default).
    stop_event : threading.Event, optional
        Checked before every capture; when set the broadcast winds down
        exactly as if the sample limit had been reached.
    stagger_cap : float
        Upper bound on the delay before a segment upload starts.
    drain_interval : float
        Poll interval while waiting for an in-flight publication at shutdown.
    """

    def __init__(
        self,
        recorder: Recorder,
        store: ContentStore,
        data_folder: str | Path,
        sample_duration: float,
        key: str = "self",
        stop_event: threading.Event | None = None,
        stagger_cap: float = STAGGER_CAP_SECONDS,
        drain_interval: float = DRAIN_INTERVAL_SECONDS,
    ):
        self._recorder = recorder
        self._store = store
        self.data_folder = Path(data_folder)
        self.manifest = Manifest(segment_duration=sample_duration)
        self.guard = SyncGuard()
        self.identity = ""
        self._key = key
        self._stop = stop_event or threading.Event()
        self._stagger_cap = stagger_cap
        self._drain_interval = drain_interval
        # guards self.manifest and self._fatal
        self._lock = threading.Lock()
        self._uploads: list[threading.Thread] = []
        self._pending_sample: Path | None = None
        self._fatal: LivestreamError | None = None

    @property
    def manifest_path(self) -> Path:
        return self.data_folder / MANIFEST_FILENAME

    @property
    def stagger_delay(self) -> float:
        """Seconds an upload waits before starting."""
        return min(self.manifest.segment_duration / 2, self._stagger_cap)

    def stop(self) -> None:
        """Ask the loop to finish after the segment being recorded."""
        self._stop.set()

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def broadcast(self, sample_limit: int = 0) -> None:
        """
        Record and publish segments until *sample_limit* is reached.

        A limit of 0 means unbounded; only the stop signal ends such a
        broadcast.  Raises IdentityError, CaptureError, MissingSegmentError
        or UploadError; publication failures along the way are logged and
        absorbed.
        """
        self._prepare_data_folder()
        self.identity = self._store.identify()
        logger.info("Broadcasting with ID %s", self.identity)
        with self._lock:
            self.manifest.started = now_stamp()

        captured = 0
        while True:
            self._raise_if_failed()
            if sample_limit and captured >= sample_limit:
                logger.info("Sample limit of %d reached.", sample_limit)
                break
            if self._stop.is_set():
                logger.info("Stop requested after %d sample(s).", captured)
                break

            self._launch_pending_upload()

            with self._lock:
                cursor = self.manifest.cursor
            sample = self.data_folder / f"sample_{cursor}.mp4"
            logger.info("Recording... %s", sample)
            self._recorder.capture(sample, self.manifest.segment_duration)
            with self._lock:
                self.manifest.cursor += 1
            self._pending_sample = sample
            captured += 1

        self._finish()

    def _prepare_data_folder(self) -> None:
        """Create the working folder, clearing samples from a previous run."""
        self.data_folder.mkdir(parents=True, exist_ok=True)
        stale = [*self.data_folder.glob("sample_*.mp4"), self.manifest_path]
        for path in stale:
            path.unlink(missing_ok=True)

    def _raise_if_failed(self) -> None:
        with self._lock:
            fatal = self._fatal
        if fatal is not None:
            raise fatal

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def _launch_pending_upload(self) -> None:
        """Start a background upload of the last recorded sample, if any."""
        sample = self._pending_sample
        if sample is None:
            return
        if not sample.is_file():
            raise MissingSegmentError(
                f"Sample {sample} does not exist or was not recorded"
            )
        self._pending_sample = None
        self._uploads = [t for t in self._uploads if t.is_alive()]
        thread = threading.Thread(
            target=self._push_sample,
            args=(sample,),
            daemon=True,
            name=f"Upload-{sample.name}",
        )
        self._uploads.append(thread)
        thread.start()

    def _push_sample(self, sample: Path) -> None:
        delay = self.stagger_delay
        logger.info("Preparing %s in %.1fs", sample.name, delay)
        time.sleep(delay)

        logger.info("Uploading %s...", sample.name)
        try:
            cid = self._store.upload(sample)
        except LivestreamError as exc:
            self._record_failure(sample, exc)
            return
        except Exception as exc:
            failure = UploadError(f"Failed to upload {sample}: {exc}")
            failure.__cause__ = exc
            self._record_failure(sample, failure)
            return

        logger.info("Added %s as %s", sample.name, cid)
        with self._lock:
            self.manifest.append_segment(cid)
            cursor = self.manifest.cursor
        self.guard.try_publish(cursor, self._sync)

    def _record_failure(self, sample: Path, exc: LivestreamError) -> None:
        """Keep the first upload failure for the capture loop to raise."""
        logger.critical("Upload of %s failed: %s", sample, exc)
        with self._lock:
            if self._fatal is None:
                self._fatal = exc

    def _wait_for_uploads(self) -> None:
        for thread in self._uploads:
            thread.join()
        self._uploads = []
        self._raise_if_failed()

    # ------------------------------------------------------------------
    # Publication
    # ------------------------------------------------------------------

    def _sync(self) -> None:
        """Publish the manifest, logging failures instead of raising them."""
        try:
            self._publish_manifest()
        except (OSError, LivestreamError) as exc:
            logger.error("Synchronization failed: %s", exc)

    def _publish_manifest(self) -> None:
        logger.info("Synchronizing...")
        with self._lock:
            self.manifest.updated = now_stamp()
            data = self.manifest.serialize()
        atomic_write(self.manifest_path, data)
        cid = self._store.upload(self.manifest_path)
        self._store.publish(self._key, cid)
        logger.info("Synchronization is over for %s", cid)

    def _drain(self) -> None:
        while self.guard.in_flight:
            logger.info("Waiting for the synchronization to finish...")
            time.sleep(self._drain_interval)

    def _finish(self) -> None:
        """Upload the last sample, drain publications and mark the stream ended."""
        self._launch_pending_upload()
        self._wait_for_uploads()

        # Upload threads are the only other publishers; once they are joined
        # the drain below returns immediately.
        self._drain()
        with self._lock:
            cursor = self.manifest.cursor
            self.manifest.ended = True
        if self.guard.has_pending_work(cursor):
            logger.info("Running the final synchronization...")
        else:
            logger.info("Publishing the end of the stream...")
        self.guard.try_publish(cursor, self._publish_manifest)
        logger.info(
            "Broadcast ended with %d segment(s).", len(self.manifest.segments)
        )
