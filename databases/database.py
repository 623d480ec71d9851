from core.config import settings
from core.logger import logger
from typing import Optional
from sqlalchemy import MetaData, event
from sqlalchemy.dialects import sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.schema import CreateTable
from models.base import SchemaVariant


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.is_sqlite = self.database_url.startswith("sqlite")

        engine_kwargs = {}
        if not self.is_sqlite:
            engine_kwargs.update(
                pool_size = 5,  # Connection pool size
                max_overflow = 10,  # Extra connections when busy
                pool_pre_ping = True,  # Check connections before using them
            )

        self.engine = create_async_engine(
            self.database_url,
            echo=settings.DATABASE_ECHO if echo is None else echo,
            future=True,
            **engine_kwargs
        )

        if self.is_sqlite:
            event.listen(self.engine.sync_engine, "connect", _set_sqlite_pragma)

        self.async_session_maker = sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    async def create_all(self, variant: SchemaVariant | str) -> MetaData:
        variant = SchemaVariant(variant)
        metadata = variant.metadata
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.debug(f"Schema {variant.value!r} ready on {self.engine.url.render_as_string(hide_password=True)}")
        return metadata

    async def dispose(self) -> None:
        await self.engine.dispose()


def schema_ddl(variant: SchemaVariant | str, dialect: Optional[Dialect] = None) -> str:
    """Render the CREATE TABLE statements of one variant, parents first."""
    metadata = SchemaVariant(variant).metadata
    dialect = dialect or sqlite.dialect()
    statements = [
        str(CreateTable(table).compile(dialect=dialect)).strip() + ";"
        for table in metadata.sorted_tables
    ]
    return "\n\n".join(statements)


dbm = DatabaseManager()
