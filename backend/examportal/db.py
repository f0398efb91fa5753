from collections.abc import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from fastapi import Depends
from sqlalchemy.orm import DeclarativeBase

from .config import DATABASE_URL, SCHEMA_SEARCH_PATH, SQL_ECHO


class Base(DeclarativeBase):
    pass


def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    connect_args = {}
    if url.startswith("postgresql") and SCHEMA_SEARCH_PATH:
        connect_args["server_settings"] = {"search_path": SCHEMA_SEARCH_PATH}

    engine = create_async_engine(url, connect_args=connect_args, echo=echo)

    if engine.dialect.name == "sqlite":
        # take the write lock when the transaction starts so concurrent
        # submissions wait for each other instead of failing on lock upgrade
        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = make_engine(DATABASE_URL, echo=SQL_ECHO)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables(bind: AsyncEngine = None):

    from .models import user_model, exam_model, submission_model, settings_model  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    from .models.user_model import User
    from fastapi_users.db import SQLAlchemyUserDatabase
    yield SQLAlchemyUserDatabase(session, User)
