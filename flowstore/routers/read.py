from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from flowstore.db import get_db
from flowstore.models import Flow
from flowstore.normalizers import format_timestamp

router = APIRouter(prefix="", tags=["read"])

# -------------------------------------------------------------------
# Helper serializer: turn ORM rows into plain dicts for JSON
# -------------------------------------------------------------------
def _flow_to_dict(f: Flow) -> Dict[str, Any]:
    """Return a flow row; the received instant is rendered with full nanoseconds."""
    return {
        "id": f.id,
        "time_received": format_timestamp(f.time_received_ns),
        "time_received_ns": f.time_received_ns,
        "sequence_num": f.sequence_num,
        "time_flow_start_ns": f.time_flow_start_ns,
        "time_flow_end_ns": f.time_flow_end_ns,
        "bytes": f.bytes,
        "packets": f.packets,
        "src_addr": f.src_addr,
        "src_port": f.src_port,
        "dst_addr": f.dst_addr,
        "dst_port": f.dst_port,
        "etype": f.etype,
        "proto": f.proto,
        "post_nat_src_ipv4_address": f.post_nat_src_ipv4_address,
        "post_nat_dst_ipv4_address": f.post_nat_dst_ipv4_address,
        "post_napt_src_transport_port": f.post_napt_src_transport_port,
        "post_napt_dst_transport_port": f.post_napt_dst_transport_port,
    }

# -------------------------------------------------------------------
# List endpoint
# -------------------------------------------------------------------
@router.get("/flows")
def list_flows(
    proto: Optional[int] = Query(None, description="Resolved protocol code (-1 = unknown)"),
    etype: Optional[int] = Query(None, description="Resolved ethertype code (-1 = unknown)"),
    src_addr: Optional[str] = Query(None, description="Exact source address"),
    dst_addr: Optional[str] = Query(None, description="Exact destination address"),
    limit: int = Query(100, ge=1, le=2000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """
    List flows in insertion order with optional filters:
      - proto / etype code
      - source / destination address
    """
    q = db.query(Flow)
    if proto is not None:
        q = q.filter(Flow.proto == proto)
    if etype is not None:
        q = q.filter(Flow.etype == etype)
    if src_addr:
        q = q.filter(Flow.src_addr == src_addr)
    if dst_addr:
        q = q.filter(Flow.dst_addr == dst_addr)
    q = q.order_by(Flow.id).offset(offset).limit(limit)
    return [_flow_to_dict(f) for f in q.all()]

# -------------------------------------------------------------------
# Single row lookup
# -------------------------------------------------------------------
@router.get("/flows/{flow_id}")
def get_flow(flow_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    f = db.get(Flow, flow_id)
    if not f: raise HTTPException(404, "Flow not found")
    return _flow_to_dict(f)
