import subprocess

import pytest

from ipfs_livestream import recorder as recorder_module
from ipfs_livestream.errors import CaptureError
from ipfs_livestream.recorder import FFmpegRecorder


def test_command_records_requested_duration_to_path(tmp_path):
    rec = FFmpegRecorder("/opt/ffmpeg")
    cmd = rec.build_command(tmp_path / "sample_0.mp4", 10.0)
    assert cmd[0] == "/opt/ffmpeg"
    assert cmd[-1] == str(tmp_path / "sample_0.mp4")
    assert cmd[cmd.index("-t") + 1] == "10"
    assert "-y" in cmd


def test_linux_input_uses_x11grab_and_optional_pulse(tmp_path, monkeypatch):
    monkeypatch.setattr(recorder_module, "IS_WINDOWS", False)
    monkeypatch.setattr(recorder_module, "IS_MACOS", False)
    cmd = FFmpegRecorder(audio_device="default").build_command(tmp_path / "s.mp4", 2.5)
    assert cmd[cmd.index("x11grab") + 4] == ":0.0"
    assert "pulse" in cmd
    assert cmd[cmd.index("-t") + 1] == "2.5"


def test_macos_input_combines_devices(tmp_path, monkeypatch):
    monkeypatch.setattr(recorder_module, "IS_WINDOWS", False)
    monkeypatch.setattr(recorder_module, "IS_MACOS", True)
    cmd = FFmpegRecorder(video_device="3").build_command(tmp_path / "s.mp4", 5)
    assert cmd[cmd.index("avfoundation") + 2] == "3:0"


def _fake_run(returncode, writes=None, stderr=b""):
    def run(cmd, **kwargs):
        if writes is not None:
            writes.write_bytes(b"mp4")
        return subprocess.CompletedProcess(cmd, returncode, stdout=None, stderr=stderr)

    return run


def test_successful_capture(tmp_path, monkeypatch):
    out = tmp_path / "sample_0.mp4"
    monkeypatch.setattr(recorder_module.subprocess, "run", _fake_run(0, writes=out))
    FFmpegRecorder().capture(out, 1)
    assert out.read_bytes() == b"mp4"


def test_nonzero_exit_raises_capture_error(tmp_path, monkeypatch):
    monkeypatch.setattr(
        recorder_module.subprocess, "run", _fake_run(1, stderr=b"No such device")
    )
    with pytest.raises(CaptureError, match="No such device"):
        FFmpegRecorder().capture(tmp_path / "sample_0.mp4", 1)


def test_missing_executable_raises_capture_error(tmp_path):
    rec = FFmpegRecorder(str(tmp_path / "no-ffmpeg-here"))
    with pytest.raises(CaptureError):
        rec.capture(tmp_path / "sample_0.mp4", 1)


def test_zero_exit_without_output_raises_capture_error(tmp_path, monkeypatch):
    monkeypatch.setattr(recorder_module.subprocess, "run", _fake_run(0))
    with pytest.raises(CaptureError):
        FFmpegRecorder().capture(tmp_path / "sample_0.mp4", 1)
