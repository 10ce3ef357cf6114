from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from alembic import command
from alembic.config import Config
import asyncio
import logging
import os

from pantry.config import Settings, settings as default_settings
from pantry.errors import StoreUnavailable

logger = logging.getLogger(__name__)

MEMORY_URL_PREFIX = "memory://"

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """Create an engine with pool settings suited to the target database"""
    if database_url.startswith("sqlite"):
        # Sessions run in worker threads (asyncio.to_thread)
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        connect_args={
            "connect_timeout": 5,  # 5 second connection timeout
        },
        pool_timeout=10,  # 10 second timeout for getting a connection from pool
    )


def _display_url(database_url: str) -> str:
    # Strip credentials before logging
    if '@' in database_url:
        return database_url.split('@')[-1]
    return database_url


async def wait_for_database(engine: Engine, max_retries: int = 30, retry_delay: float = 2):
    """Wait for database to be available with retry logic"""
    logger.info(f"Waiting for database connection to {_display_url(str(engine.url))}...")

    for attempt in range(1, max_retries + 1):
        try:
            def ping():
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1")).fetchone()

            await asyncio.to_thread(ping)
            logger.info("Database connection successful")
            return True
        except Exception as e:
            if attempt < max_retries:
                logger.warning(f"Database connection attempt {attempt}/{max_retries} failed: {e}. Retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)
            else:
                logger.error(f"Database connection failed after {max_retries} attempts: {e}")
                raise
    return False


def find_alembic_ini() -> str:
    """Locate alembic.ini in the working directory or the project root"""
    alembic_ini_path = "alembic.ini"
    if os.path.exists(alembic_ini_path):
        return alembic_ini_path

    # pantry/db/database.py -> project root
    file_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(os.path.dirname(file_dir))
    alembic_ini_path = os.path.join(project_root, "alembic.ini")
    if not os.path.exists(alembic_ini_path):
        raise FileNotFoundError(
            f"Could not find alembic.ini. Current directory: {os.getcwd()}, "
            f"Tried: alembic.ini and {alembic_ini_path}"
        )
    return alembic_ini_path


async def run_migrations(database_url: str, timeout: float = 60.0):
    """Upgrade the schema to the latest Alembic revision"""
    alembic_ini_path = find_alembic_ini()
    logger.info(f"Using Alembic config: {os.path.abspath(alembic_ini_path)}")

    alembic_cfg = Config(alembic_ini_path)
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    # Keep the service logging configuration
    alembic_cfg.attributes["configure_logger"] = False

    logger.info("Starting Alembic migration to head...")
    try:
        # Alembic is blocking; keep it off the event loop
        await asyncio.wait_for(
            asyncio.to_thread(command.upgrade, alembic_cfg, "head"),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        logger.error(f"Database migrations timed out after {timeout:.0f} seconds")
        raise
    logger.info("Database migrations completed successfully")


def create_schema(engine: Engine):
    """Create all tables directly from the models (no migration history)"""
    import pantry.models  # noqa: F401  registers the tables on Base.metadata

    Base.metadata.create_all(engine)


async def init_db(config: Settings = default_settings):
    """Open the configured store, preparing the schema first

    Returns:
        A ready RemoteStore

    Raises:
        StoreUnavailable: If the database cannot be reached or migrated
    """
    if config.database_url.startswith(MEMORY_URL_PREFIX):
        from pantry.db.memory_store import InMemoryStore

        logger.info("Using in-memory store (data is not persisted)")
        return InMemoryStore()

    from pantry.db.sql_store import SqlAlchemyStore

    engine = build_engine(config.database_url)
    try:
        await wait_for_database(
            engine,
            max_retries=config.db_connect_max_retries,
            retry_delay=config.db_connect_retry_delay
        )
        if config.run_migrations:
            logger.info("Running database migrations...")
            await run_migrations(config.database_url)
        else:
            logger.info("Migrations disabled, creating tables from models")
            await asyncio.to_thread(create_schema, engine)
    except Exception as e:
        logger.error(f"Error initializing database: {e}", exc_info=True)
        engine.dispose()
        raise StoreUnavailable(f"Database initialization failed: {e}") from e

    return SqlAlchemyStore.from_engine(engine)
