"""Shared fakes for the recorder and content store."""

import hashlib
import threading
import time
from pathlib import Path

import pytest

from ipfs_livestream.errors import (
    CaptureError,
    IdentityError,
    PublishError,
    ResolutionError,
    UploadError,
)


class FakeRecorder:
    """Writes a small file per capture; can fail on a given call."""

    def __init__(self, fail_on=None, write=True, on_capture=None):
        self.calls = []
        self._fail_on = fail_on
        self._write = write
        self._on_capture = on_capture

    def capture(self, path, duration):
        self.calls.append((Path(path), duration))
        if self._fail_on is not None and len(self.calls) == self._fail_on:
            raise CaptureError("device unplugged")
        time.sleep(duration)
        if self._write:
            Path(path).write_bytes(f"segment {len(self.calls)}".encode())
        if self._on_capture:
            self._on_capture(len(self.calls))


class FakeStore:
    """In-memory content store recording every call."""

    def __init__(
        self,
        identity="QmPeer",
        fail_identify=False,
        fail_segment_uploads=False,
        fail_publishes=0,
        publish_delay=0.0,
        upload_delays=None,
    ):
        self.identity = identity
        self.blobs = {}
        self.names = {}
        self.published = []
        self.segment_uploads = []
        self._fail_identify = fail_identify
        self._fail_segment_uploads = fail_segment_uploads
        self._fail_publishes = fail_publishes
        self._publish_delay = publish_delay
        self._upload_delays = upload_delays or {}
        self._lock = threading.Lock()
        self._active_publishes = 0
        self.max_concurrent_publishes = 0

    def identify(self):
        if self._fail_identify:
            raise IdentityError("daemon not running")
        return self.identity

    def upload(self, path):
        path = Path(path)
        data = path.read_bytes()
        is_segment = path.name.startswith("sample_")
        if is_segment:
            time.sleep(self._upload_delays.get(path.name, 0))
            if self._fail_segment_uploads:
                raise UploadError(f"cannot add {path.name}")
        cid = "Qm" + hashlib.sha256(data).hexdigest()[:16]
        with self._lock:
            self.blobs[cid] = data
            if is_segment:
                self.segment_uploads.append((path.name, cid))
        return cid

    def publish(self, name, cid):
        with self._lock:
            self._active_publishes += 1
            self.max_concurrent_publishes = max(
                self.max_concurrent_publishes, self._active_publishes
            )
        try:
            time.sleep(self._publish_delay)
            with self._lock:
                if self._fail_publishes:
                    self._fail_publishes -= 1
                    raise PublishError("routing timeout")
                key = self.identity if name == "self" else name
                self.names[key] = cid
                self.published.append(self.blobs[cid])
        finally:
            with self._lock:
                self._active_publishes -= 1

    def download(self, name, dest):
        with self._lock:
            cid = self.names.get(name)
            if cid is None:
                raise ResolutionError(f"could not resolve {name}")
            data = self.blobs[cid]
        Path(dest).write_bytes(data)


class ScriptedStore:
    """Store whose downloads return a fixed sequence of payloads."""

    def __init__(self, payloads):
        self._payloads = list(payloads)
        self.downloads = 0

    def download(self, name, dest):
        if not self._payloads:
            raise ResolutionError(f"could not resolve {name}")
        self.downloads += 1
        data = self._payloads[0] if len(self._payloads) == 1 else self._payloads.pop(0)
        Path(dest).write_bytes(data)


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def store():
    return FakeStore()
