# flowstore/normalizers/tables.py
"""
Name -> code lookup tables for IP protocols and ethertypes.

Both tables are parsed from the text blocks below. Each data line is
"<code> <name>"; protocol codes are decimal (IANA protocol numbers),
ethertype codes are 0x-prefixed hex (IEEE 802 ethertypes). Names are
case-sensitive and must be unique within a table.
"""
import logging
import re
from types import MappingProxyType
from typing import Mapping, NamedTuple

from .errors import TableSpecError

log = logging.getLogger(__name__)

# IANA "Assigned Internet Protocol Numbers" subset, keyword spelling.
PROTOCOL_SPEC = """\
# code  keyword
0     HOPOPT
1     ICMP
2     IGMP
3     GGP
4     IPv4
5     ST
6     TCP
7     CBT
8     EGP
9     IGP
17    UDP
27    RDP
33    DCCP
41    IPv6
43    IPv6-Route
44    IPv6-Frag
46    RSVP
47    GRE
50    ESP
51    AH
58    IPv6-ICMP
# goflow2 spells protocol 58 this way
58    ICMPv6
59    IPv6-NoNxt
60    IPv6-Opts
88    EIGRP
89    OSPFIGP
94    IPIP
97    ETHERIP
103   PIM
112   VRRP
115   L2TP
132   SCTP
136   UDPLite
137   MPLS-in-IP
"""

# IEEE 802 ethertype subset.
ETHERTYPE_SPEC = """\
# code    name
0x0800    IPv4
0x0806    ARP
0x0842    WakeOnLAN
0x22F3    TRILL
0x6003    DECnet
0x8035    RARP
0x809B    AppleTalk
0x80F3    AARP
0x8100    802.1Q
0x8137    IPX
0x86DD    IPv6
0x8808    EthernetFlowControl
0x8809    SlowProtocols
0x8847    MPLS
0x8848    MPLS-Multicast
0x8863    PPPoE-Discovery
0x8864    PPPoE-Session
0x888E    EAPOL
0x88A8    802.1ad
0x88CC    LLDP
0x88E5    MACsec
0x88F7    PTP
0x8906    FCoE
"""

_DECIMAL = re.compile(r"^[0-9]+$")
_HEX = re.compile(r"^0x[0-9A-Fa-f]+$")


class TablePair(NamedTuple):
    protocols: Mapping[str, int]
    ethertypes: Mapping[str, int]


def _fail(table: str, lineno: int, line: str, why: str):
    log.critical("bad %s table entry at line %d (%r): %s", table, lineno, line, why)
    raise TableSpecError(f"{table} table line {lineno}: {why}: {line!r}")


def parse_table(table: str, text: str, hex_codes: bool, max_code: int) -> Mapping[str, int]:
    """
    Parse one embedded table into a read-only mapping.
    Any malformed line is fatal: it is logged at CRITICAL with its line
    number and TableSpecError is raised.
    """
    pattern = _HEX if hex_codes else _DECIMAL
    out: dict[str, int] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) != 2:
            _fail(table, lineno, raw, "expected '<code> <name>'")
        code_s, name = parts
        if not pattern.match(code_s):
            _fail(table, lineno, raw, f"malformed code {code_s!r}")
        code = int(code_s, 16 if hex_codes else 10)
        if code > max_code:
            _fail(table, lineno, raw, f"code {code} out of range (max {max_code})")
        if name in out:
            _fail(table, lineno, raw, f"duplicate name {name!r}")
        out[name] = code
    return MappingProxyType(out)


def build_protocol_table(spec: str = PROTOCOL_SPEC) -> Mapping[str, int]:
    return parse_table("protocol", spec, hex_codes=False, max_code=0xFF)


def build_ethertype_table(spec: str = ETHERTYPE_SPEC) -> Mapping[str, int]:
    return parse_table("ethertype", spec, hex_codes=True, max_code=0xFFFF)


def build_tables() -> TablePair:
    """Build both tables once; callers keep and share the result."""
    return TablePair(build_protocol_table(), build_ethertype_table())
