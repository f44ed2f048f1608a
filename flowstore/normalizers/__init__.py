from .flows import normalize, FlowNormalizer
from .tables import build_protocol_table, build_ethertype_table, build_tables, TablePair
from .decoders import parse_timestamp, format_timestamp, decode_hex_ipv4, decode_optional_hex_ipv4
from .errors import NormalizationError, MalformedTimestamp, MalformedHexAddress, TableSpecError
from .types import RawFlowRecord, CanonicalFlowRecord, UNKNOWN_PROTOCOL, UNKNOWN_ETHERTYPE
from .base import Normalizer

__all__ = [
    "normalize",
    "FlowNormalizer",
    "build_protocol_table",
    "build_ethertype_table",
    "build_tables",
    "TablePair",
    "parse_timestamp",
    "format_timestamp",
    "decode_hex_ipv4",
    "decode_optional_hex_ipv4",
    "NormalizationError",
    "MalformedTimestamp",
    "MalformedHexAddress",
    "TableSpecError",
    "RawFlowRecord",
    "CanonicalFlowRecord",
    "UNKNOWN_PROTOCOL",
    "UNKNOWN_ETHERTYPE",
    "Normalizer",
]
