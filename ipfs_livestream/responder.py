"""
Side responder for watchers.

Serves the most recently downloaded manifest at ``GET /sync`` so that a
local player can pick up changes without waiting for the next IPNS
poll.  The bytes are returned verbatim, with permissive CORS so a page
served from anywhere can read them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from flask import Flask, Response
from werkzeug.serving import BaseWSGIServer, make_server

logger = logging.getLogger(__name__)


def create_app(get_manifest: Callable[[], bytes]) -> Flask:
    """Build the Flask app; *get_manifest* returns the bytes to serve."""
    app = Flask(__name__)

    @app.after_request
    def _enable_cors(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.get("/sync")
    def sync() -> Response:
        return Response(get_manifest(), status=200, mimetype="application/json")

    return app


class ManifestResponder:
    """Run :func:`create_app` on a daemon thread.

    Usage:
        responder = ManifestResponder(lambda: cache, port=8888)
        responder.start()
        ...
        responder.stop()
    """

    def __init__(
        self,
        get_manifest: Callable[[], bytes],
        host: str = "0.0.0.0",
        port: int = 8888,
    ):
        self.app = create_app(get_manifest)
        self._host = host
        self._port = port
        self._server: BaseWSGIServer | None = None
        self._thread: threading.Thread | None = None

    # ---- lifecycle ----

    def start(self) -> None:
        server = make_server(self._host, self._port, self.app, threaded=True)
        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever, daemon=True, name="ManifestResponder"
        )
        self._thread.start()
        logger.info("Serving /sync on http://%s:%d", self._host, self.port)

    def stop(self) -> None:
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        logger.info("Responder stopped.")

    @property
    def port(self) -> int:
        """Return the bound port (useful when started with port 0)."""
        if self._server is not None:
            return self._server.server_port
        return self._port

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
