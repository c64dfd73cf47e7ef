# storeadmin/utils/db.py

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from storeadmin.config import load_config


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    # check_same_thread=False is only needed for SQLite. Gateway calls run in worker threads.
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(database_url, connect_args=connect_args)


def create_tables(engine: Engine) -> None:
    # Importing the models registers the tables on SQLModel.metadata
    import storeadmin.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


engine = make_engine(load_config().database_url)
