# flowstore/settings.py
import os

from dotenv import load_dotenv

# Pick up a local .env (if any) before reading the environment
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


DATABASE_URL = os.getenv("FLOWSTORE_DATABASE_URL", "sqlite:///./flowstore.sqlite3")

# Records per commit (one transaction per batch)
BATCH_SIZE = int(os.getenv("FLOWSTORE_BATCH_SIZE", "50000"))

# Drop flows whose protocol name is not in the protocol table
# (false -> keep them with proto = UNKNOWN_PROTOCOL)
DROP_UNKNOWN_PROTOCOL = _flag("FLOWSTORE_DROP_UNKNOWN_PROTOCOL", "true")

LOG_LEVEL = os.getenv("FLOWSTORE_LOG_LEVEL", "INFO")
