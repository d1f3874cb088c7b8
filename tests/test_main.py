import pytest

from ipfs_livestream import __main__ as cli
from ipfs_livestream import app as app_module
from ipfs_livestream.errors import CaptureError


class FakeApp:
    instances = []

    def __init__(self, fail=False):
        self.calls = []
        self._fail = fail
        FakeApp.instances.append(self)

    def broadcast(self, samples):
        self.calls.append(("broadcast", samples))
        if self._fail:
            raise CaptureError("no screen")

    def watch(self, name):
        self.calls.append(("watch", name))


@pytest.fixture
def fake_app(monkeypatch):
    FakeApp.instances = []
    monkeypatch.setattr(app_module, "App", FakeApp)
    return FakeApp


@pytest.mark.parametrize(
    "argv, expected",
    [
        (["broadcast"], ("broadcast", 0)),
        (["broadcast", "6"], ("broadcast", 6)),
        (["watch", "QmPeer"], ("watch", "QmPeer")),
    ],
)
def test_commands_dispatch_to_app(fake_app, argv, expected):
    assert cli.main(argv) == 0
    assert fake_app.instances[0].calls == [expected]


@pytest.mark.parametrize(
    "argv", [["broadcast", "six"], ["broadcast", "-1"], ["watch"], ["frobnicate"]]
)
def test_bad_arguments_print_usage(fake_app, argv, capsys):
    assert cli.main(argv) == 2
    assert "Usage:" in capsys.readouterr().out
    assert fake_app.instances == []


def test_help_exits_cleanly(fake_app, capsys):
    assert cli.main([]) == 0
    assert cli.main(["help"]) == 0
    assert "broadcast [SAMPLES]" in capsys.readouterr().out


def test_engine_errors_map_to_exit_status_one(monkeypatch):
    monkeypatch.setattr(app_module, "App", lambda: FakeApp(fail=True))
    assert cli.main(["broadcast", "2"]) == 1
