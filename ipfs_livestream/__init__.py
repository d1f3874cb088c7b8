"""IPFS Livestream — screen broadcasting over IPFS/IPNS.

Records the screen as fixed-duration segments, uploads each one to an
IPFS node and republishes a small JSON manifest under a stable IPNS name
so that watchers can follow the stream as it grows.
"""

__version__ = "1.0.0"
__app_name__ = "IPFS Livestream"
