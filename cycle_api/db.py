from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from .config import settings


def _make_engine(url: str):
    if url.startswith("sqlite"):
        kw = {"connect_args": {"check_same_thread": False}}
        # in-memory databases must share one connection across threads
        if url in ("sqlite://", "sqlite:///:memory:"):
            kw["poolclass"] = StaticPool
        return create_engine(url, **kw)
    return create_engine(url, pool_pre_ping=True)


engine = _make_engine(settings.DATABASE_URL)


def init_db():
    from . import models  # noqa: F401  (register tables)
    from .seed import seed_catalog
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        seed_catalog(s)


def get_session():
    with Session(engine) as s:
        yield s
