"""
Content stores for IPFS Livestream.

A content store uploads files and hands back a content identifier,
binds a stable name to an identifier, and downloads whatever a name
currently points at.  ``IpfsStore`` talks to a local IPFS node over its
HTTP API and gateway; ``LocalStore`` keeps everything in a directory and
is handy for offline runs and tests.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Protocol

import requests

from ipfs_livestream.errors import (
    IdentityError,
    PublishError,
    ResolutionError,
    UploadError,
)
from ipfs_livestream.manifest import atomic_write, fingerprint

logger = logging.getLogger(__name__)


class ContentStore(Protocol):
    """Interface the broadcast and watch engines expect from a store."""

    def identify(self) -> str:
        """Return the local node identity (the name watchers resolve)."""
        ...

    def upload(self, path: Path) -> str:
        """Upload *path* and return its content identifier."""
        ...

    def publish(self, name: str, cid: str) -> None:
        """Point the stable *name* at *cid*."""
        ...

    def download(self, name: str, dest: Path) -> None:
        """Resolve *name* and write the content it points at to *dest*."""
        ...


class IpfsStore:
    """
    Content store backed by an IPFS node.

    Parameters
    ----------
    api_url : str
        Base URL of the node's HTTP RPC API (``/api/v0``).
    gateway_url : str
        Base URL of the node's HTTP gateway, used for IPNS downloads.
    timeout : float
        Seconds to wait on any single HTTP call.
    """

    def __init__(
        self,
        api_url: str = "http://127.0.0.1:5001",
        gateway_url: str = "http://127.0.0.1:8080",
        timeout: float = 60,
        session: requests.Session | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.gateway_url = gateway_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _rpc(self, command: str, **kwargs: Any) -> requests.Response:
        resp = self._session.post(
            f"{self.api_url}/api/v0/{command}", timeout=self._timeout, **kwargs
        )
        resp.raise_for_status()
        return resp

    # ---- ContentStore ----

    def identify(self) -> str:
        try:
            peer_id = self._rpc("id").json()["ID"]
        except (requests.RequestException, ValueError, KeyError) as exc:
            raise IdentityError(f"Could not read IPFS node identity: {exc}") from exc
        logger.debug("IPFS node identity: %s", peer_id)
        return peer_id

    def upload(self, path: Path) -> str:
        try:
            with open(path, "rb") as fh:
                resp = self._rpc("add", files={"file": (Path(path).name, fh)})
            # add streams one JSON object per line; the last one is the file
            cid = json.loads(resp.text.strip().splitlines()[-1])["Hash"]
        except (requests.RequestException, ValueError, KeyError, IndexError) as exc:
            raise UploadError(f"Failed to add {path} to IPFS: {exc}") from exc
        except OSError as exc:
            raise UploadError(f"Failed to open {path}: {exc}") from exc
        return cid

    def publish(self, name: str, cid: str) -> None:
        try:
            self._rpc("name/publish", params={"arg": f"/ipfs/{cid}", "key": name})
        except requests.RequestException as exc:
            raise PublishError(f"Failed to publish {cid} under {name}: {exc}") from exc

    def download(self, name: str, dest: Path) -> None:
        url = f"{self.gateway_url}/ipns/{name}"
        try:
            resp = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise ResolutionError(f"Failed to download {url}: {exc}") from exc
        if resp.status_code != requests.codes.ok:
            raise ResolutionError(
                f"Failed to download the file, response code {resp.status_code}"
            )
        try:
            atomic_write(dest, resp.content)
        except OSError as exc:
            raise ResolutionError(f"Could not store {url} at {dest}: {exc}") from exc

    # ---- bootstrap list ----

    def clear_bootstrap_list(self) -> None:
        """Remove every peer from the node's bootstrap list."""
        self._rpc("bootstrap/rm/all")

    def set_bootstrap_list(self, peers: list[str]) -> None:
        """Replace the node's bootstrap list with *peers*."""
        try:
            self.clear_bootstrap_list()
        except requests.RequestException:
            logger.error("Failed to clear bootstrap list.")
            raise
        for peer in peers:
            self._rpc("bootstrap/add", params={"arg": peer})
        logger.info("Bootstrap list set to %d peer(s).", len(peers))


class LocalStore:
    """
    Content-addressed store kept in a local directory.

    Uploaded files land in ``blobs/<sha256>``; each published name is a
    small file under ``names/`` holding the identifier it points at.
    Publishing the key ``self`` binds the store's own identity, mirroring
    how IPNS publishes under the node's peer ID.
    """

    def __init__(self, root: str | Path, identity: str = "local"):
        self.root = Path(root)
        self._identity = identity
        self._blobs = self.root / "blobs"
        self._names = self.root / "names"

    def identify(self) -> str:
        try:
            self._blobs.mkdir(parents=True, exist_ok=True)
            self._names.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IdentityError(f"Store root {self.root} is unusable: {exc}") from exc
        return self._identity

    def upload(self, path: Path) -> str:
        try:
            cid = fingerprint(path)
            blob = self._blobs / cid
            if not blob.exists():
                self._blobs.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=self._blobs)
                os.close(fd)
                shutil.copyfile(path, tmp)
                os.replace(tmp, blob)
        except OSError as exc:
            raise UploadError(f"Failed to store {path}: {exc}") from exc
        return cid

    def publish(self, name: str, cid: str) -> None:
        key = self._identity if name == "self" else name
        try:
            atomic_write(self._names / key, cid.encode("utf-8"))
        except OSError as exc:
            raise PublishError(f"Failed to publish {cid} under {key}: {exc}") from exc

    def download(self, name: str, dest: Path) -> None:
        try:
            cid = (self._names / name).read_text(encoding="utf-8").strip()
            atomic_write(dest, (self._blobs / cid).read_bytes())
        except OSError as exc:
            raise ResolutionError(f"Could not resolve {name}: {exc}") from exc

    def resolve(self, name: str) -> str | None:
        """Return the identifier *name* points at, or None if unpublished."""
        try:
            return (self._names / name).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
