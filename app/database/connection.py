from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine.url import make_url
from app.config import settings
import logging

logger = logging.getLogger(__name__)

# Applied to every new SQLite connection
SQLITE_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = FULL",
    "PRAGMA cache_size = 1000",
    "PRAGMA temp_store = memory",
    "PRAGMA busy_timeout = 30000",
    "PRAGMA foreign_keys = ON",
]


def get_database_url():
    """Normalize DATABASE_URL to an aiosqlite URL"""
    url = make_url(settings.DATABASE_URL)
    if url.drivername in ("sqlite", "sqlite+pysqlite"):
        url = url.set(drivername="sqlite+aiosqlite")
    return url


def get_connect_args():
    """Connection arguments for the SQLite driver"""
    url = get_database_url()
    if url.drivername.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_async_engine(
    get_database_url(),
    echo=settings.DEBUG,
    future=True,
    connect_args=get_connect_args()
)


@event.listens_for(engine.sync_engine, "connect")
def _apply_sqlite_pragmas(dbapi_connection, connection_record):
    """Apply durability PRAGMAs when the driver opens a connection"""
    if not get_database_url().drivername.startswith("sqlite"):
        return
    cursor = dbapi_connection.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)

Base = declarative_base()


async def init_db():
    """Create tables if missing and report how many calls are stored"""
    from app.models import Call  # noqa: F401  (registers the table on Base)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        result = await conn.execute(text("SELECT COUNT(*) FROM calls"))
        count = result.scalar_one()
    logger.info(f"✅ Database ready at {settings.DATABASE_URL} - existing calls: {count}")


async def close_db():
    """Close database connections"""
    await engine.dispose()
