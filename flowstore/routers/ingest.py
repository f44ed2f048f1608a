from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.concurrency import run_in_threadpool

from flowstore import settings
from flowstore.db import SessionLocal
from flowstore.ingest import StoreError, run
from flowstore.repositories import FlowStore, SqlAlchemyFlowStore

# --------------------------------------------------------------------
# Router setup
# --------------------------------------------------------------------
router = APIRouter(prefix="", tags=["ingest"])


def get_store() -> FlowStore:
    """Store dependency; each batch opens (and closes) its own session."""
    return SqlAlchemyFlowStore(SessionLocal)


@router.post("/ingest")
async def ingest(
    request: Request,
    batch_size: int = Query(settings.BATCH_SIZE, ge=1),
    drop_unknown_protocol: bool = Query(settings.DROP_UNKNOWN_PROTOCOL),
    store: FlowStore = Depends(get_store),
) -> Dict[str, Any]:
    """
    Bulk-ingest goflow2 records.

    Accepts:
        The raw log as the request body: newline-delimited JSON, one flow
        record per line (Content-Type is not checked).

    Behavior:
        * Lines are processed in order and committed every `batch_size` records.
        * Bad lines and bad records are skipped and counted, never fatal.
        * A database failure aborts the run: rows of already committed
          batches stay, the open batch is rolled back, and the endpoint
          answers 500.

    Returns:
        {
          "ok": True,
          "lines_read": ..., "inserted": ..., "commits": ...,
          "parse_errors": ..., "normalize_errors": ..., "filtered": ...,
          "errors": [ ... up to 10 sample skips ... ]
        }
    """
    body = await request.body()
    if not body.strip():
        raise HTTPException(400, "Body must contain at least one JSON line")

    tables = request.app.state.tables
    try:
        # The batch loop blocks on the database; keep it off the event loop
        summary = await run_in_threadpool(
            run, body.splitlines(), tables, store, batch_size,
            drop_unknown_protocol=drop_unknown_protocol,
        )
    except StoreError as e:
        raise HTTPException(500, f"Ingest failed: {e}")

    return {"ok": True, **summary.as_dict()}
