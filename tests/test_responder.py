from ipfs_livestream.responder import ManifestResponder, create_app


def test_sync_returns_cached_bytes_verbatim():
    cache = {"data": b'{"parts":[],"cursor":0}'}
    client = create_app(lambda: cache["data"]).test_client()

    resp = client.get("/sync")
    assert resp.status_code == 200
    assert resp.data == b'{"parts":[],"cursor":0}'
    assert resp.mimetype == "application/json"
    assert resp.headers["Access-Control-Allow-Origin"] == "*"

    cache["data"] = b'{"parts":["QmA"],"cursor":1}'
    assert client.get("/sync").data == b'{"parts":["QmA"],"cursor":1}'


def test_empty_cache_is_served_as_empty_body():
    client = create_app(lambda: b"").test_client()
    resp = client.get("/sync")
    assert resp.status_code == 200
    assert resp.data == b""


def test_only_get_is_allowed():
    client = create_app(lambda: b"{}").test_client()
    assert client.post("/sync").status_code == 405
    assert client.get("/other").status_code == 404


def test_responder_binds_ephemeral_port_and_stops():
    responder = ManifestResponder(lambda: b"{}", host="127.0.0.1", port=0)
    responder.start()
    try:
        assert responder.is_running
        assert responder.port > 0
    finally:
        responder.stop()
    assert not responder.is_running
