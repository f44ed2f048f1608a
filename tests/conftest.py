# tests/conftest.py
import json
import os
import tempfile
import pytest

# Keep the app's import-time engine away from the working directory
os.environ.setdefault("FLOWSTORE_DATABASE_URL", "sqlite://")

from fastapi.testclient import TestClient
from sqlalchemy import text

from flowstore.main import app
from flowstore.db import Base, get_db, make_engine, make_session_factory
from flowstore.normalizers import build_tables
from flowstore.repositories import SqlAlchemyFlowStore
from flowstore.routers.ingest import get_store


# One goflow2 IPFIX line as exported (extra fields included on purpose)
SAMPLE_FLOW = {
    "type": "IPFIX",
    "time_received_ns": "2025-03-15T17:10:51.064235982Z",
    "sequence_num": 2259237964,
    "sampling_rate": 0,
    "sampler_address": "10.255.255.254",
    "time_flow_start_ns": 1742058651000000000,
    "time_flow_end_ns": 1742058651000000000,
    "bytes": 52,
    "packets": 1,
    "src_addr": "10.8.31.235",
    "src_net": "0.0.0.0/0",
    "dst_addr": "1.1.1.1",
    "dst_net": "0.0.0.0/0",
    "etype": "IPv4",
    "proto": "TCP",
    "src_port": 41015,
    "dst_port": 53,
    "in_if": 4,
    "out_if": 35,
    "src_mac": "2c:c8:1b:ac:cf:81",
    "dst_mac": "dc:2c:6e:8c:c6:f3",
    "icmp_name": "unknown",
    "post_nat_src_ipv4_address": "6799ef23",
    "post_nat_dst_ipv4_address": "01010101",
    "post_napt_src_transport_port": 41015,
    "post_napt_dst_transport_port": 53,
}


@pytest.fixture
def flow_line():
    """Factory: SAMPLE_FLOW with overrides; `drop=` removes keys."""
    def _make(drop=(), **overrides):
        rec = {**SAMPLE_FLOW, **overrides}
        for k in drop:
            rec.pop(k, None)
        return json.dumps(rec)
    return _make


@pytest.fixture(scope="session")
def tables():
    return build_tables()


# --- In-memory store that records what the ingest loop did ---
class RecordingStore:
    def __init__(self, fail_commit_at=None, fail_begin=False):
        self.fail_commit_at = fail_commit_at   # 1-based commit number that raises
        self.fail_begin = fail_begin
        self.begins = 0
        self.commits = []       # batch sizes, in order
        self.rollbacks = []     # batch sizes, in order
        self.rows = []

    def begin(self):
        if self.fail_begin:
            raise RuntimeError("connection refused")
        self.begins += 1
        return []

    def insert(self, tx, record):
        tx.append(record)

    def commit(self, tx):
        if self.fail_commit_at == len(self.commits) + 1:
            raise RuntimeError("disk I/O error")
        self.commits.append(len(tx))
        self.rows.extend(tx)

    def rollback(self, tx):
        self.rollbacks.append(len(tx))
        tx.clear()


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def make_store():
    return RecordingStore


# --- Temporary SQLite DB file for the whole test session ---
@pytest.fixture(scope="session")
def tmp_db_url():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    try:
        os.remove(path)
    except OSError:
        pass


@pytest.fixture(scope="session")
def engine(tmp_db_url):
    eng = make_engine(tmp_db_url)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="session")
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def sql_store(session_factory):
    return SqlAlchemyFlowStore(session_factory)


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    # start every test from an empty table
    db.execute(text("DELETE FROM flows"))
    db.commit()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


# --- Override FastAPI's DB/store dependencies to use the test database ---
@pytest.fixture(autouse=True)
def override_deps(db_session, sql_store):
    def _get_db():
        try:
            yield db_session
        finally:
            pass
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_store] = lambda: sql_store
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
