import logging
from typing import Any, Callable, Dict, Protocol

from sqlalchemy.orm import Session

from flowstore.models import Flow
from flowstore.normalizers import CanonicalFlowRecord

log = logging.getLogger(__name__)


class FlowStore(Protocol):
    """Destination of canonical records: one open transaction per batch."""
    def begin(self) -> Any: ...
    def insert(self, tx: Any, record: CanonicalFlowRecord) -> None: ...
    def commit(self, tx: Any) -> None: ...
    def rollback(self, tx: Any) -> None: ...


def _text(addr) -> str | None:
    return str(addr) if addr is not None else None


def flow_to_row(rec: CanonicalFlowRecord) -> Dict[str, Any]:
    """Map a canonical record onto the 16 `flows` columns."""
    return {
        "time_received_ns": rec.time_received_ns,
        "sequence_num": rec.sequence_num,
        "time_flow_start_ns": rec.time_flow_start_ns,
        "time_flow_end_ns": rec.time_flow_end_ns,
        "bytes": rec.bytes,
        "packets": rec.packets,
        "src_addr": str(rec.src_addr),
        "dst_addr": str(rec.dst_addr),
        "src_port": rec.src_port,
        "dst_port": rec.dst_port,
        "etype": rec.etype,
        "proto": rec.proto,
        "post_nat_src_ipv4_address": _text(rec.post_nat_src_ipv4_address),
        "post_nat_dst_ipv4_address": _text(rec.post_nat_dst_ipv4_address),
        "post_napt_src_transport_port": rec.post_napt_src_transport_port,
        "post_napt_dst_transport_port": rec.post_napt_dst_transport_port,
    }


class SqlAlchemyFlowStore(FlowStore):
    """
    FlowStore backed by SQLAlchemy sessions.
    A transaction is a fresh Session; commit/rollback always close it so
    no session outlives its batch.
    """
    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def begin(self) -> Session:
        db = self.session_factory()
        db.begin()
        return db

    def insert(self, tx: Session, record: CanonicalFlowRecord) -> None:
        tx.add(Flow(**flow_to_row(record)))

    def commit(self, tx: Session) -> None:
        try:
            tx.commit()
        finally:
            tx.close()

    def rollback(self, tx: Session) -> None:
        try:
            tx.rollback()
        finally:
            tx.close()
