# apps/api/db.py
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("postgresql") and settings.db_statement_timeout_ms > 0:
        return {"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    future=True,
    connect_args=_connect_args(settings.database_url),
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def healthcheck():
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
