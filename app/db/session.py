from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from app.core.config import settings

# execution options for a session that is about to read, then write
WRITE_TRANSACTION = {"sqlite_begin": "IMMEDIATE"}


def enable_sqlite_transactions(engine: AsyncEngine) -> AsyncEngine:
    """Have SQLAlchemy emit BEGIN itself on SQLite connections.

    The sqlite3 driver only opens a transaction at the first INSERT/UPDATE,
    so a locked read-then-write is not possible with its default behaviour.
    Connections checked out with ``WRITE_TRANSACTION`` begin IMMEDIATE and
    hold the database write lock from their first statement.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        mode = conn.get_execution_options().get("sqlite_begin")
        conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")

    return engine


engine = create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
if engine.dialect.name == "sqlite":
    enable_sqlite_transactions(engine)

async_session = async_sessionmaker(engine, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with async_session() as session:
        yield session


async def begin_write(session: AsyncSession) -> None:
    """Start a write transaction, committing whatever read-only work preceded it."""
    if session.in_transaction():
        await session.commit()
    await session.connection(execution_options=WRITE_TRANSACTION)


async def init_models(bind: AsyncEngine | None = None):
    import app.db.base  # noqa: F401  registers every model on Base.metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
