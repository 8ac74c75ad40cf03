import os
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config import SQL_ECHO


def resolve_database_url() -> str:
    # Priority order for DB connection:
    # 1. If DATABASE_URL is provided, use it directly (must be an async DB URL)
    # 2. If MYSQL_* env vars are present, construct a MySQL aiomysql DSN
    # 3. Fall back to a local SQLite file using aiosqlite
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    mysql_user = os.getenv("MYSQL_USER")
    mysql_pass = os.getenv("MYSQL_PASSWORD")
    mysql_host = os.getenv("DATABASE_HOST") or os.getenv("MYSQL_HOST")
    mysql_port = os.getenv("DATABASE_PORT") or os.getenv("MYSQL_PORT")
    mysql_db = os.getenv("MYSQL_DATABASE")

    if mysql_user and mysql_pass and mysql_host and mysql_db:
        port_part = f":{mysql_port}" if mysql_port else ""
        return f"mysql+aiomysql://{mysql_user}:{mysql_pass}@{mysql_host}{port_part}/{mysql_db}"

    return os.getenv("SQLITE_DATABASE_URL", "sqlite+aiosqlite:///./countries.db")


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    return create_async_engine(database_url or resolve_database_url(), echo=SQL_ECHO, future=True)


def build_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Base class for all models
Base = declarative_base()
