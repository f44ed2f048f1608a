def _body(*lines):
    return "\n".join(lines) + "\n"


def test_ingest_then_read_flow(client, flow_line):
    r = client.post("/ingest", content=_body(flow_line(), flow_line(proto="UDP")))
    assert r.status_code == 200
    out = r.json()
    assert out["ok"] is True
    assert out["inserted"] == 2
    assert out["commits"] == 1

    r2 = client.get("/flows")
    assert r2.status_code == 200
    rows = r2.json()
    assert [f["proto"] for f in rows] == [6, 17]
    assert rows[0]["time_received"] == "2025-03-15T17:10:51.064235982Z"
    assert rows[0]["post_nat_src_ipv4_address"] == "103.153.239.35"


def test_ingest_batches_and_skips(client, flow_line):
    body = _body(flow_line(), "not json", flow_line(), flow_line(proto="QUIC"), flow_line())
    r = client.post("/ingest", params={"batch_size": 2}, content=body)
    assert r.status_code == 200
    out = r.json()
    assert out["lines_read"] == 5
    assert out["inserted"] == 3
    assert out["commits"] == 2
    assert out["parse_errors"] == 1
    assert out["filtered"] == 1
    assert {e["kind"] for e in out["errors"]} == {"parse_error", "filtered"}


def test_ingest_keep_unknown_protocol(client, flow_line):
    r = client.post("/ingest", params={"drop_unknown_protocol": "false"}, content=_body(flow_line(proto="QUIC")))
    assert r.status_code == 200
    assert r.json()["inserted"] == 1
    rows = client.get("/flows", params={"proto": -1}).json()
    assert len(rows) == 1


def test_ingest_empty_body(client):
    r = client.post("/ingest", content="  \n")
    assert r.status_code == 400


def test_ingest_bad_batch_size(client, flow_line):
    r = client.post("/ingest", params={"batch_size": 0}, content=_body(flow_line()))
    assert r.status_code == 422


def test_ingest_store_failure_is_500(client, flow_line, make_store):
    from flowstore.main import app
    from flowstore.routers.ingest import get_store

    store = make_store(fail_commit_at=1)
    app.dependency_overrides[get_store] = lambda: store
    r = client.post("/ingest", content=_body(flow_line()))
    assert r.status_code == 500
    assert "commit failed" in r.json()["detail"]
    assert store.rollbacks == [1]


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    out = r.json()
    assert out["ok"] is True
    assert out["tables_ready"] is True
    assert out["protocols"] > 0 and out["ethertypes"] > 0
