# flowstore/normalizers/types.py
from dataclasses import dataclass
from datetime import datetime
from ipaddress import IPv4Address
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress

from .decoders import INT64_MAX, format_timestamp, timestamp_to_datetime

# Out-of-band codes for names missing from the lookup tables.
UNKNOWN_PROTOCOL = -1
UNKNOWN_ETHERTYPE = -1

# JSON numbers only (no "7", no true); counters must fit a BIGINT column
Counter = Annotated[int, Field(strict=True, ge=0, le=INT64_MAX)]
PortNumber = Annotated[int, Field(strict=True, ge=0, le=65535)]


class RawFlowRecord(BaseModel):
    """
    One goflow2 JSON line, as received.
    Extra exporter fields (sampler_address, src_mac, in_if, ...) are ignored.
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    time_received_ns: str                 # "2025-03-15T17:10:51.064235982Z"
    sequence_num: Counter
    time_flow_start_ns: Counter
    time_flow_end_ns: Counter
    bytes: Counter
    packets: Counter
    src_addr: IPvAnyAddress
    dst_addr: IPvAnyAddress
    etype: str                            # "IPv4", "IPv6", "ARP", ...
    proto: str                            # "TCP", "UDP", ...
    src_port: PortNumber
    dst_port: PortNumber
    # Present only when the exporter saw NAT; packed hex words like "6799ef23"
    post_nat_src_ipv4_address: Optional[str] = None
    post_nat_dst_ipv4_address: Optional[str] = None
    post_napt_src_transport_port: Optional[PortNumber] = None
    post_napt_dst_transport_port: Optional[PortNumber] = None


@dataclass(frozen=True)
class CanonicalFlowRecord:
    time_received_ns: int          # epoch nanoseconds, UTC
    sequence_num: int
    time_flow_start_ns: int
    time_flow_end_ns: int
    bytes: int
    packets: int
    src_addr: object               # IPv4Address | IPv6Address
    dst_addr: object
    etype: int                     # resolved code or UNKNOWN_ETHERTYPE
    proto: int                     # resolved code or UNKNOWN_PROTOCOL
    src_port: int
    dst_port: int
    post_nat_src_ipv4_address: Optional[IPv4Address] = None
    post_nat_dst_ipv4_address: Optional[IPv4Address] = None
    post_napt_src_transport_port: Optional[int] = None
    post_napt_dst_transport_port: Optional[int] = None

    @property
    def time_received(self) -> datetime:
        return timestamp_to_datetime(self.time_received_ns)

    @property
    def time_received_iso(self) -> str:
        return format_timestamp(self.time_received_ns)
