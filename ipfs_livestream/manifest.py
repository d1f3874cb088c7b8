"""
Stream manifest for IPFS Livestream.

The manifest (``sync.json``) is the only state shared between a
broadcaster and its watchers: the ordered list of uploaded segment CIDs,
the capture cursor, the segment duration and the lifecycle flags.
It is republished under the broadcaster's IPNS name after every upload.

Wire format is a JSON object::

    {"parts": ["Qm…", …], "cursor": 3, "sample": 10000000000,
     "ended": false, "started": "…", "updated": "…"}

``sample`` is the segment duration in integer nanoseconds.
"""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from ipfs_livestream.errors import FormatError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "sync.json"

_NS_PER_SECOND = 1_000_000_000
_HASH_CHUNK = 256 * 1024  # 256 KiB read chunks for hashing


def now_stamp() -> str:
    """Return the local time as an ISO-8601 string."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def fingerprint(filepath: Path) -> str:
    """Return the hex SHA-256 digest of *filepath*."""
    h = hashlib.sha256()
    with open(filepath, "rb") as fh:
        while chunk := fh.read(_HASH_CHUNK):
            h.update(chunk)
    return h.hexdigest()


def atomic_write(path: Path, data: bytes) -> None:
    """Replace *path* with *data* so readers never see a partial file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp)
        raise


@dataclass
class Manifest:
    """Serializable description of a stream and its segment list."""

    segments: list[str] = field(default_factory=list)
    cursor: int = 0
    segment_duration: float = 0.0
    ended: bool = False
    started: str = ""
    updated: str = ""

    def __post_init__(self) -> None:
        # the wire format carries whole nanoseconds
        self.segment_duration = (
            round(self.segment_duration * _NS_PER_SECOND) / _NS_PER_SECOND
        )

    def append_segment(self, cid: str) -> None:
        """Append an uploaded segment's content identifier."""
        if self.ended:
            raise ValueError("cannot append to an ended stream")
        self.segments.append(cid)

    # ---- encoding ----

    def to_dict(self) -> dict[str, Any]:
        return {
            "parts": list(self.segments),
            "cursor": self.cursor,
            "sample": round(self.segment_duration * _NS_PER_SECOND),
            "ended": self.ended,
            "started": self.started,
            "updated": self.updated,
        }

    def serialize(self) -> bytes:
        """Encode every persisted field as compact JSON bytes."""
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def deserialize(cls, data: bytes) -> Manifest:
        """
        Parse manifest bytes into a fresh Manifest.

        Missing keys take their defaults; anything else that does not fit
        the wire format raises :class:`FormatError`.
        """
        try:
            raw = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FormatError(f"Manifest is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise FormatError(
                f"Manifest must be a JSON object, got {type(raw).__name__}"
            )

        parts = raw.get("parts", [])
        if parts is None:
            parts = []
        if not isinstance(parts, list) or not all(isinstance(p, str) for p in parts):
            raise FormatError("'parts' must be a list of strings")

        cursor = _int_field(raw, "cursor")
        sample = _int_field(raw, "sample")

        ended = raw.get("ended", False)
        if not isinstance(ended, bool):
            raise FormatError("'ended' must be a boolean")

        started = raw.get("started", "")
        updated = raw.get("updated", "")
        if not isinstance(started, str) or not isinstance(updated, str):
            raise FormatError("'started' and 'updated' must be strings")

        if len(parts) > cursor:
            raise FormatError(
                f"Manifest lists {len(parts)} parts but cursor is {cursor}"
            )

        return cls(
            segments=parts,
            cursor=cursor,
            segment_duration=sample / _NS_PER_SECOND,
            ended=ended,
            started=started,
            updated=updated,
        )

    # ---- persistence ----

    def write(self, path: Path) -> bytes:
        """Atomically write the serialized manifest to *path*; return the bytes."""
        data = self.serialize()
        atomic_write(path, data)
        logger.debug("Wrote manifest (%d bytes) to %s", len(data), path)
        return data

    @classmethod
    def read(cls, path: Path) -> Manifest:
        return cls.deserialize(path.read_bytes())


def _int_field(raw: dict[str, Any], key: str) -> int:
    value = raw.get(key, 0)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise FormatError(f"'{key}' must be a non-negative integer")
    return value
