"""
Screen recorders for IPFS Livestream.

A recorder captures one segment of a requested duration into a file and
returns only once the file is complete.  ``FFmpegRecorder`` shells out
to ffmpeg with the capture input appropriate for the current platform.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from ipfs_livestream.errors import CaptureError
from ipfs_livestream.platform_utils import IS_MACOS, IS_WINDOWS

logger = logging.getLogger(__name__)


class Recorder(Protocol):
    """Interface the broadcaster expects from a recorder."""

    def capture(self, path: Path, duration: float) -> None:
        """Record *duration* seconds into *path*, raising CaptureError on failure."""
        ...


class FFmpegRecorder:
    """Record the desktop (and one audio input) with ffmpeg."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        video_device: str = "",
        audio_device: str = "",
    ):
        self.ffmpeg_path = ffmpeg_path
        self.video_device = video_device
        self.audio_device = audio_device

    def _input_args(self) -> list[str]:
        if IS_WINDOWS:
            args = [
                "-rtbufsize", "200M",
                "-f", "gdigrab", "-thread_queue_size", "1024", "-probesize", "10M",
                "-r", "30", "-draw_mouse", "1", "-i", self.video_device or "desktop",
            ]
            if self.audio_device:
                args += [
                    "-f", "dshow", "-channel_layout", "stereo",
                    "-thread_queue_size", "1024", "-i", f"audio={self.audio_device}",
                ]
            return args
        if IS_MACOS:
            video = self.video_device or "1"
            audio = self.audio_device or "0"
            return ["-f", "avfoundation", "-i", f"{video}:{audio}"]
        args = ["-f", "x11grab", "-r", "30", "-i", self.video_device or ":0.0"]
        if self.audio_device:
            args += ["-f", "pulse", "-i", self.audio_device]
        return args

    def build_command(self, path: Path, duration: float) -> list[str]:
        """Return the full ffmpeg argument list for one segment."""
        return [
            self.ffmpeg_path,
            "-hide_banner", "-loglevel", "error", "-y",
            *self._input_args(),
            "-t", f"{duration:g}",
            "-c:v", "libx264", "-preset", "ultrafast", "-tune", "zerolatency",
            "-crf", "25", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "128k",
            str(path),
        ]

    def capture(self, path: Path, duration: float) -> None:
        cmd = self.build_command(path, duration)
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                check=False,
            )
        except OSError as exc:
            raise CaptureError(f"Could not run {self.ffmpeg_path}: {exc}") from exc
        if result.returncode != 0:
            detail = result.stderr.decode("utf-8", "replace").strip()
            raise CaptureError(
                f"ffmpeg exited with status {result.returncode}: {detail[-500:]}"
            )
        if not Path(path).is_file():
            raise CaptureError(f"ffmpeg reported success but {path} was not written")
