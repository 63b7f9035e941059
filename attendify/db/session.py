# attendify/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from attendify.core.config import settings

def normalize_url(url: str) -> str:
    if url and url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url and url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url

def make_engine(url: str | None = None, **kwargs) -> Engine:
    url = normalize_url((url or settings.DATABASE_URL or "").strip() or "sqlite:///./data/attendify.db")
    if url.startswith("sqlite"):
        # sessões são usadas também pelas threads de fundo
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True, **kwargs)

def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)

engine = make_engine()
SessionLocal = make_session_factory(engine)

