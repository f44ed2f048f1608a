import logging, sys

from flowstore.settings import LOG_LEVEL

def setup_logging(level: str | None = None):
    logger = logging.getLogger()
    level = (level or LOG_LEVEL).upper()
    if logger.handlers:  # already configured (reload, or the CLI ran first)
        logger.setLevel(getattr(logging, level, logging.INFO))
        return
    logger.setLevel(getattr(logging, level, logging.INFO))
    h = logging.StreamHandler(sys.stdout)
    fmt = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s :: %(message)s"
    )
    h.setFormatter(fmt)
    logger.addHandler(h)
    # per-statement SQL logging is far too noisy at 50k inserts per batch
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
