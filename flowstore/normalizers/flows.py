# flowstore/normalizers/flows.py
import logging
from typing import Mapping

from .base import Normalizer
from .decoders import decode_optional_hex_ipv4, parse_timestamp
from .tables import TablePair
from .types import (
    UNKNOWN_ETHERTYPE,
    UNKNOWN_PROTOCOL,
    CanonicalFlowRecord,
    RawFlowRecord,
)

log = logging.getLogger(__name__)


def normalize(
    raw: RawFlowRecord,
    protocol_table: Mapping[str, int],
    ethertype_table: Mapping[str, int],
) -> CanonicalFlowRecord:
    """
    Turn one raw goflow2 record into a canonical record.

    Raises MalformedTimestamp / MalformedHexAddress; nothing partial is
    returned. Unknown protocol/ethertype names are NOT errors here: they
    resolve to the UNKNOWN_* sentinels and are logged, and the caller
    decides whether to keep the record.
    """
    received = parse_timestamp(raw.time_received_ns)

    proto = resolve(protocol_table, raw.proto, UNKNOWN_PROTOCOL, "protocol", raw)
    etype = resolve(ethertype_table, raw.etype, UNKNOWN_ETHERTYPE, "ethertype", raw)

    nat_src = decode_optional_hex_ipv4(raw.post_nat_src_ipv4_address)
    nat_dst = decode_optional_hex_ipv4(raw.post_nat_dst_ipv4_address)

    return CanonicalFlowRecord(
        time_received_ns=received,
        sequence_num=raw.sequence_num,
        time_flow_start_ns=raw.time_flow_start_ns,
        time_flow_end_ns=raw.time_flow_end_ns,
        bytes=raw.bytes,
        packets=raw.packets,
        src_addr=raw.src_addr,
        dst_addr=raw.dst_addr,
        etype=etype,
        proto=proto,
        src_port=raw.src_port,
        dst_port=raw.dst_port,
        post_nat_src_ipv4_address=nat_src,
        post_nat_dst_ipv4_address=nat_dst,
        post_napt_src_transport_port=raw.post_napt_src_transport_port,
        post_napt_dst_transport_port=raw.post_napt_dst_transport_port,
    )


def resolve(table: Mapping[str, int], name: str, sentinel: int, what: str, raw: RawFlowRecord) -> int:
    """Exact, case-sensitive lookup; a miss is logged with the flow's 5-tuple-ish context."""
    code = table.get(name)
    if code is not None:
        return code
    log.warning(
        "unknown %s %r: seq=%s src=%s:%s dst=%s:%s",
        what, name, raw.sequence_num,
        raw.src_addr, raw.src_port, raw.dst_addr, raw.dst_port,
    )
    return sentinel


class FlowNormalizer(Normalizer):
    """Binds the lookup tables so the ingest loop only passes the record."""
    def __init__(self, tables: TablePair):
        self.tables = tables

    def normalize_record(self, raw: RawFlowRecord) -> CanonicalFlowRecord:
        return normalize(raw, self.tables.protocols, self.tables.ethertypes)
