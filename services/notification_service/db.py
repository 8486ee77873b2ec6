import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

# Read-only access to the orders table owned by order-service
DATABASE_URL = os.getenv("ORDERS_DATABASE_URL") or os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set")
DB_SCHEMA = os.getenv("ORDERS_DB_SCHEMA", "orders")

engine = create_engine(
    DATABASE_URL,
    poolclass=NullPool,   # Lambda-friendly default
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def _quote_ident(ident: str) -> str:
    return '"' + ident.replace('"', '""') + '"'


@event.listens_for(engine, "connect")
def _set_search_path(dbapi_conn, _):
    if engine.dialect.name != "postgresql":
        return
    schema = _quote_ident(DB_SCHEMA)
    cur = dbapi_conn.cursor()
    cur.execute(f"SET search_path TO {schema}")
    cur.close()
