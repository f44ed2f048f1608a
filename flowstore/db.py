from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from flowstore.settings import DATABASE_URL

Base = declarative_base()


def make_engine(url: str = DATABASE_URL):
    """Engine for `url`; SQLite files get check_same_thread off so the ingest
    endpoint can run the batch loop in a worker thread."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, future=True, echo=False, connect_args=connect_args)


def make_session_factory(eng):
    return sessionmaker(bind=eng, autoflush=False, autocommit=False, future=True)


engine = make_engine()
SessionLocal = make_session_factory(engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
