# flowstore/sources.py
import gzip
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator


@contextmanager
def open_source(path: str) -> Iterator[BinaryIO]:
    """
    Open a goflow2 log for reading in binary mode.
    "-" is stdin; *.gz files are decompressed on the fly. Lines are left as
    bytes so one bad UTF-8 sequence costs one line, not the whole run.
    """
    if path == "-":
        yield sys.stdin.buffer
        return
    p = Path(path)
    fh = gzip.open(p, "rb") if p.suffix == ".gz" else open(p, "rb")
    try:
        yield fh
    finally:
        fh.close()


def iter_lines(fh: BinaryIO) -> Iterator[bytes]:
    """Yield raw lines without their line terminator."""
    for line in fh:
        yield line.rstrip(b"\r\n")
