# flowstore/normalizers/base.py
from typing import Protocol
from .types import CanonicalFlowRecord, RawFlowRecord

class Normalizer(Protocol):
    def normalize_record(self, raw: RawFlowRecord) -> CanonicalFlowRecord:
        """Return a fully built canonical record or raise NormalizationError."""
        ...
