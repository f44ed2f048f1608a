"""
flowstore-ingest: load a goflow2 JSON log into the flows table.

    flowstore-ingest goflow2_20250315_1723.log --batch-size 50000
    zcat old.log.gz | flowstore-ingest - --db postgresql+psycopg://...

SIGINT/SIGTERM stop the run after the current batch is committed.
"""
import argparse
import json
import logging
import signal
import sys
import threading

from flowstore import settings
from flowstore.db import Base, make_engine, make_session_factory
from flowstore.ingest import StoreError, run
from flowstore.normalizers import build_tables
from flowstore.repositories import SqlAlchemyFlowStore
from flowstore.setup_logging import setup_logging
from flowstore.sources import iter_lines, open_source

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STORE_ERROR = 1
EXIT_INPUT_ERROR = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="flowstore-ingest",
                                 description="Normalize goflow2 JSON lines and load them in commit batches")
    ap.add_argument("path", help="goflow2 JSON log (.gz ok), or - for stdin")
    ap.add_argument("--db", default=settings.DATABASE_URL,
                    help="SQLAlchemy database URL (default: %(default)s)")
    ap.add_argument("--batch-size", type=int, default=settings.BATCH_SIZE,
                    help="records per commit (default: %(default)s)")
    ap.add_argument("--keep-unknown-protocol", action="store_true",
                    default=not settings.DROP_UNKNOWN_PROTOCOL,
                    help="store flows with an unknown protocol name as proto=-1 instead of dropping them")
    ap.add_argument("--log-level", default=settings.LOG_LEVEL)
    return ap


def _install_cancel_handlers(cancel: threading.Event) -> dict:
    """Route SIGINT/SIGTERM to `cancel`; returns the previous handlers."""
    def _handler(signum, frame):
        log.warning("signal %d received; stopping after the current batch", signum)
        cancel.set()
    previous = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, _handler)
    return previous


def main(argv=None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if args.batch_size < 1:
        ap.error("--batch-size must be >= 1")
    setup_logging(args.log_level)

    tables = build_tables()
    eng = make_engine(args.db)
    Base.metadata.create_all(bind=eng)
    store = SqlAlchemyFlowStore(make_session_factory(eng))

    cancel = threading.Event()
    previous = {}
    if threading.current_thread() is threading.main_thread():
        previous = _install_cancel_handlers(cancel)

    try:
        with open_source(args.path) as fh:
            summary = run(
                iter_lines(fh), tables, store, args.batch_size,
                drop_unknown_protocol=not args.keep_unknown_protocol,
                cancel=cancel,
            )
    except StoreError as e:
        log.error("ingest aborted: %s (cause: %r)", e, e.__cause__)
        return EXIT_STORE_ERROR
    except OSError as e:
        log.error("cannot read %s: %s", args.path, e)
        return EXIT_INPUT_ERROR
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        eng.dispose()

    out = summary.as_dict()
    print(json.dumps(out, indent=2, default=str))
    return EXIT_CANCELLED if summary.cancelled else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
