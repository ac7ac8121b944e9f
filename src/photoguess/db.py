from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlmodel import Session, SQLModel, create_engine

from photoguess.config import get_settings

DB_URL = get_settings().database_url

_connect_args = {'check_same_thread': False} if DB_URL.startswith('sqlite') else {}
engine = create_engine(DB_URL, connect_args=_connect_args)


def create_db_and_tables() -> None:
    import photoguess.models  # noqa: F401  registers all tables on metadata

    database = make_url(DB_URL).database
    if DB_URL.startswith('sqlite') and database and database != ':memory:':
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
