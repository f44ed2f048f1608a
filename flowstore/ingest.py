"""
Batch ingestion loop: raw goflow2 lines -> canonical records -> store.

Lines are processed strictly in source order. Records are appended to one
open store transaction; every `batch_size` records the transaction is
committed and the next record opens a new one.
"""
import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from flowstore import settings
from flowstore.normalizers import (
    UNKNOWN_PROTOCOL,
    FlowNormalizer,
    NormalizationError,
    Normalizer,
    RawFlowRecord,
    TablePair,
)
from flowstore.repositories import FlowStore

log = logging.getLogger(__name__)

MAX_ERROR_SAMPLES = 10

# Skip kinds
PARSE_ERROR = "parse_error"
NORMALIZE_ERROR = "normalize_error"
FILTERED = "filtered"


class StoreError(RuntimeError):
    """The destination store failed; the run is aborted."""


@dataclass
class SkipEvent:
    line_no: int
    kind: str                     # parse_error | normalize_error | filtered
    reason: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class IngestSummary:
    lines_read: int = 0
    inserted: int = 0
    commits: int = 0
    parse_errors: int = 0
    normalize_errors: int = 0
    filtered: int = 0
    cancelled: bool = False
    errors: List[SkipEvent] = field(default_factory=list)

    def record_skip(self, event: SkipEvent) -> None:
        if event.kind == PARSE_ERROR:
            self.parse_errors += 1
        elif event.kind == NORMALIZE_ERROR:
            self.normalize_errors += 1
        else:
            self.filtered += 1
        if len(self.errors) < MAX_ERROR_SAMPLES:
            self.errors.append(event)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _context(raw: RawFlowRecord) -> Dict[str, Any]:
    return {
        "sequence_num": raw.sequence_num,
        "src": f"{raw.src_addr}:{raw.src_port}",
        "dst": f"{raw.dst_addr}:{raw.dst_port}",
    }


def _skip(summary: IngestSummary, event: SkipEvent) -> None:
    log.warning("line %d skipped (%s): %s %s", event.line_no, event.kind, event.reason, event.context or "")
    summary.record_skip(event)


def _decode_line(line: Union[str, bytes]) -> RawFlowRecord:
    """
    JSON text -> RawFlowRecord. Raises ValueError for anything that is not
    one JSON object of the goflow2 shape (bad UTF-8, blank, bad JSON, wrong fields).
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8")
    if not line.strip():
        raise ValueError("empty line")
    return RawFlowRecord.model_validate_json(line)


def _parse_error_reason(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ())) or "<line>"
        return f"{exc.error_count()} error(s), first: {loc}: {first.get('msg')}"
    return str(exc)


def run(
    line_source: Iterable[Union[str, bytes]],
    tables: TablePair,
    store: FlowStore,
    batch_size: int = settings.BATCH_SIZE,
    *,
    drop_unknown_protocol: bool = settings.DROP_UNKNOWN_PROTOCOL,
    cancel: Optional[threading.Event] = None,
    on_progress: Optional[Callable[[int], None]] = None,
    normalizer: Optional[Normalizer] = None,
) -> IngestSummary:
    """
    Ingest every line of `line_source` into `store`.

    Per line:
      * undecodable / invalid JSON / wrong shape -> logged, counted as parse_errors
      * MalformedTimestamp / MalformedHexAddress  -> logged, counted as normalize_errors
      * unknown protocol and drop_unknown_protocol -> logged, counted as filtered
      * otherwise appended to the open transaction

    A full batch is committed before the next record is added. Whatever is
    left when the source ends is committed too. Any store failure rolls
    back the open transaction and raises StoreError; there is no retry.
    `cancel` is only looked at between batches.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    normalizer = normalizer or FlowNormalizer(tables)
    summary = IngestSummary()
    tx = None
    pending = 0   # records in the open transaction

    if cancel is not None and cancel.is_set():
        log.info("ingest cancelled before start")
        summary.cancelled = True
        return summary

    try:
        for line_no, line in enumerate(line_source, start=1):
            summary.lines_read += 1

            try:
                raw = _decode_line(line)
            except ValueError as e:  # UnicodeDecodeError and ValidationError included
                _skip(summary, SkipEvent(line_no, PARSE_ERROR, _parse_error_reason(e)))
                continue

            try:
                rec = normalizer.normalize_record(raw)
            except NormalizationError as e:
                _skip(summary, SkipEvent(line_no, NORMALIZE_ERROR, str(e), _context(raw)))
                continue

            if rec.proto == UNKNOWN_PROTOCOL and drop_unknown_protocol:
                _skip(summary, SkipEvent(line_no, FILTERED, f"unknown protocol {raw.proto!r}", _context(raw)))
                continue

            if tx is None:
                tx = _begin(store, summary)
            try:
                store.insert(tx, rec)
            except Exception as e:
                raise StoreError(f"insert failed at line {line_no}: {e}") from e
            pending += 1

            if pending >= batch_size:
                _commit(store, tx, pending, summary, on_progress)
                tx, pending = None, 0
                if cancel is not None and cancel.is_set():
                    log.info("ingest cancelled after %d records", summary.inserted)
                    summary.cancelled = True
                    return summary

        if tx is not None:
            _commit(store, tx, pending, summary, on_progress)
            tx, pending = None, 0

    except BaseException:
        if tx is not None:
            _rollback_quietly(store, tx, pending)
        raise

    log.info(
        "ingest done: lines=%d inserted=%d commits=%d parse_errors=%d normalize_errors=%d filtered=%d",
        summary.lines_read, summary.inserted, summary.commits,
        summary.parse_errors, summary.normalize_errors, summary.filtered,
    )
    return summary


def _begin(store: FlowStore, summary: IngestSummary):
    try:
        return store.begin()
    except Exception as e:
        raise StoreError(f"could not open transaction after {summary.inserted} records: {e}") from e


def _commit(store: FlowStore, tx, pending: int, summary: IngestSummary, on_progress) -> None:
    try:
        store.commit(tx)
    except Exception as e:
        log.error("commit of %d records failed; aborting run", pending)
        raise StoreError(f"commit failed after {summary.inserted} committed records: {e}") from e
    summary.inserted += pending
    summary.commits += 1
    log.info("committed batch of %d: %d records so far", pending, summary.inserted)
    if on_progress is not None:
        on_progress(summary.inserted)


def _rollback_quietly(store: FlowStore, tx, pending: int) -> None:
    """Roll back during error handling; a failure here must not hide the original error."""
    try:
        store.rollback(tx)
        log.warning("rolled back open batch of %d records", pending)
    except Exception:
        log.exception("rollback of open batch failed")
