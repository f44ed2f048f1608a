from contextlib import asynccontextmanager
from fastapi import FastAPI

from .db import engine, Base
from .routers.ingest import router as ingest_router
from .routers.read import router as read_router
from flowstore.setup_logging import setup_logging
from flowstore.normalizers import build_tables

# --------------------------------------------------------------------
# App bootstrap
# --------------------------------------------------------------------
setup_logging() # Init Logging

# Create database tables if they don’t exist.
Base.metadata.create_all(bind=engine)

# --------------------------------------------------------------------
# FastAPI application with lifespan hook
# --------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context runs once at startup and once at shutdown.
    The protocol/ethertype lookup tables are built here, once, and shared
    read-only by every ingest request. A broken table is fatal at startup.
    """
    app.state.tables = build_tables()
    yield

# Create the FastAPI app instance
app = FastAPI(title="flowstore", lifespan=lifespan)

# --------------------------------------------------------------------
# Routes
# --------------------------------------------------------------------
@app.get("/healthz")
def health():
    """
    Simple health probe for monitoring.
    Returns:
      - ok: static True if the app is alive
      - tables_ready: True once the lookup tables are built
      - protocols / ethertypes: number of known names in each table
    """
    tables = getattr(app.state, "tables", None)
    return {
        "ok": True,
        "service": "flowstore",
        "version": 1,
        "tables_ready": tables is not None,
        "protocols": len(tables.protocols) if tables else 0,
        "ethertypes": len(tables.ethertypes) if tables else 0,
    }

# Register API routers:
app.include_router(ingest_router)
app.include_router(read_router)
