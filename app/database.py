# app/database.py
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import get_settings

settings = get_settings()


def _with_ssl(url: str) -> str:
    if "sslmode=" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}sslmode=require"


def _build_engine(db_url: str) -> Engine:
    """
    Engine for the configured database.

    Supabase's session pooler caps concurrent clients, so Postgres gets a
    single pooled connection (no overflow) that is pinged before reuse,
    plus SSL. Other URLs, such as sqlite for local runs, use SQLAlchemy's
    defaults.
    """
    if not db_url.startswith("postgres"):
        return create_engine(db_url, echo=settings.DB_ECHO)

    return create_engine(
        _with_ssl(db_url),
        echo=settings.DB_ECHO,
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


engine = _build_engine(settings.DATABASE_URL)


def create_db_and_tables() -> None:
    """Create any missing tables. Run once from the app lifespan."""
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
