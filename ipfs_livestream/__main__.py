"""Entry point for IPFS Livestream.

Usage:
    python -m ipfs_livestream broadcast [SAMPLES]   Record and publish the screen
                                                    (SAMPLES = 0 or omitted: until Ctrl-C)
    python -m ipfs_livestream watch NAME            Follow the stream published under NAME
"""

import logging
import sys

from ipfs_livestream.errors import LivestreamError

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Dispatch to the broadcast or watch command; return the exit status."""
    args = sys.argv[1:] if argv is None else argv
    cmd = args[0] if args else ""

    if cmd == "broadcast" and len(args) <= 2:
        try:
            samples = int(args[1]) if len(args) == 2 else 0
        except ValueError:
            _show_help()
            return 2
        if samples < 0:
            _show_help()
            return 2
        action = ("broadcast", samples)
    elif cmd == "watch" and len(args) == 2:
        action = ("watch", args[1])
    else:
        _show_help()
        return 0 if cmd in ("", "help", "--help", "-h") else 2

    from ipfs_livestream.app import App

    app = App()
    try:
        getattr(app, action[0])(action[1])
    except LivestreamError as exc:
        logger.error("%s failed: %s", action[0].capitalize(), exc)
        return 1
    except KeyboardInterrupt:
        return 130
    return 0


def _show_help() -> None:
    print("IPFS Livestream")
    print()
    print("Usage:")
    print("  python -m ipfs_livestream broadcast [SAMPLES]   Record and publish the screen")
    print("  python -m ipfs_livestream watch NAME            Follow a published stream")


def run() -> None:
    """Console-script wrapper."""
    sys.exit(main())


if __name__ == "__main__":
    run()
