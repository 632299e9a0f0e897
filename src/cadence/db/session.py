from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Connection, Engine


@contextmanager
def db_connection(engine: Engine) -> Iterator[Connection]:
    with engine.connect() as connection:
        yield connection


@contextmanager
def db_transaction(engine: Engine) -> Iterator[Connection]:
    with engine.begin() as connection:
        yield connection
